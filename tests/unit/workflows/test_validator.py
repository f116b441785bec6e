"""
Unit tests for the download URL validator.
"""

import pytest

from comfyfetch.core.errors import ValidationFailure
from comfyfetch.core.models import ResourceType
from comfyfetch.workflows.validator import (
    URLValidator,
    rule_custom_node_github,
    rule_page_marker,
    rule_scheme,
    rule_search_marker,
    rule_too_short,
    validate,
    validate_all,
)

CP = ResourceType.CHECKPOINT
CN = ResourceType.CUSTOM_NODE


class TestRules:
    """Each rule on its own (rules see the lowercased URL)."""

    def test_too_short(self):
        assert rule_too_short("", CP)[0] is False
        assert rule_too_short("http", CP)[0] is False
        assert rule_too_short("https://x", CP) is None

    def test_search_marker(self):
        is_valid, reason = rule_search_marker("search: lora for anime style", CP)
        assert is_valid is False
        assert "search query" in reason
        assert rule_search_marker("https://x.com/search:", CP) is None

    def test_page_marker(self):
        is_valid, reason = rule_page_marker("page: https://civitai.com/models/1", CP)
        assert is_valid is False
        assert "general page" in reason

    def test_scheme_http_passes_through(self):
        assert rule_scheme("https://github.com/a/b", CN) is None
        assert rule_scheme("http://example.com/x.ckpt", CP) is None

    def test_scheme_ssh_remote_for_custom_node(self):
        assert rule_scheme("git@github.com:foo/bar.git", CN) == (True, None)

    def test_scheme_ssh_remote_for_model_rejected(self):
        is_valid, reason = rule_scheme("git@github.com:foo/bar.git", CP)
        assert is_valid is False
        assert "ssh remote" in reason.lower()

    def test_scheme_other(self):
        assert rule_scheme("ftp://host/file.ckpt", CP)[0] is False

    def test_custom_node_github(self):
        assert rule_custom_node_github("https://gitlab.com/a/b", CN)[0] is False
        assert rule_custom_node_github("https://github.com/a/b", CN) is None
        assert rule_custom_node_github("https://gitlab.com/a/b", CP) is None


class TestValidate:
    """End-to-end verdicts through the ordered chain."""

    def test_search_query(self, make_resource):
        result = validate(make_resource(download_url="search: lora for anime style", type=ResourceType.LORA))
        assert result.is_valid is False
        assert "search query" in result.reason

    def test_search_marker_is_case_insensitive(self, make_resource):
        result = validate(make_resource(download_url="SEARCH: something"))
        assert result.is_valid is False

    def test_ssh_custom_node_valid(self, make_resource):
        result = validate(make_resource(download_url="git@github.com:foo/bar.git", type=CN))
        assert result.is_valid is True
        assert result.reason is None

    def test_unknown_host_checkpoint_invalid(self, make_resource):
        result = validate(make_resource(download_url="https://example.com/file.zip", type=CP))
        assert result.is_valid is False
        assert "recognized direct link" in result.reason

    def test_unknown_host_with_model_extension_valid(self, make_resource):
        result = validate(make_resource(download_url="https://example.com/file.safetensors", type=CP))
        assert result.is_valid is True

    @pytest.mark.parametrize("url", [
        "https://civitai.com/api/download/models/128713",
        "https://huggingface.co/org/repo/resolve/main/x",
        "https://files.catbox.moe/abc123",
    ])
    def test_known_hosts_valid(self, make_resource, url):
        assert validate(make_resource(download_url=url, type=ResourceType.VAE)).is_valid is True

    def test_custom_node_not_github(self, make_resource):
        result = validate(make_resource(download_url="https://gitlab.com/foo/bar", type=CN))
        assert result.is_valid is False
        assert "GitHub" in result.reason

    def test_empty_url(self, make_resource):
        result = validate(make_resource(download_url=""))
        assert result.is_valid is False
        assert "too short" in result.reason

    def test_first_match_wins(self, make_resource):
        """A search marker is reported even though the scheme is also wrong."""
        result = validate(make_resource(download_url="search: github.com foo", type=CN))
        assert "search query" in result.reason

    def test_does_not_mutate(self, make_resource):
        resource = make_resource(download_url="  SEARCH: x  ")
        before = resource.model_dump()
        validate(resource)
        assert resource.model_dump() == before


class TestURLValidator:
    """Tests for configured validators and reports."""

    def test_extra_hosts(self, make_resource):
        resource = make_resource(download_url="https://models.example.org/get?id=1", type=CP)
        assert validate(resource).is_valid is False
        assert URLValidator(extra_hosts=["models.example.org"]).validate(resource).is_valid is True

    def test_custom_rule_chain(self, make_resource):
        validator = URLValidator(rules=[lambda url, t: (False, "nope") if "bad" in url else None])
        assert validator.validate(make_resource(download_url="bad")).reason == "nope"
        assert validator.validate(make_resource(download_url="good")).is_valid is True

    def test_report(self, make_resource, custom_node, checkpoint):
        bad = make_resource(name="Bad", download_url="PAGE: https://civitai.com")
        report = validate_all([custom_node, bad, checkpoint])

        assert len(report.results) == 3
        assert report.is_clean is False
        assert [f.resource.name for f in report.failures] == ["Bad"]

    def test_raise_for_failures(self, make_resource):
        report = validate_all([make_resource(name="Bad", download_url="")])
        with pytest.raises(ValidationFailure) as exc_info:
            report.raise_for_failures()
        assert "Bad" in str(exc_info.value)

    def test_clean_report_does_not_raise(self, custom_node):
        validate_all([custom_node]).raise_for_failures()

    def test_result_to_dict(self, custom_node):
        data = validate(custom_node).to_dict()
        assert data["is_valid"] is True
        assert data["download_url"] == "https://github.com/foo/bar"
