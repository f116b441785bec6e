"""
Unit tests for the workflow scanner.
"""

import json

import pytest

from comfyfetch.core.errors import ParseError
from comfyfetch.workflows.scanner import (
    CORE_NODE_TYPES,
    CoreNodePolicy,
    WorkflowScanner,
    is_model_filename,
    scan_workflow_file,
)


def _names(items):
    return [item.raw_name for item in items]


class TestExecutionForm:
    """Tests for API (execution) form documents."""

    def test_checkpoint_loader_scenario(self):
        """A stock loader contributes its file but not itself."""
        document = '{"4":{"class_type":"CheckpointLoaderSimple","inputs":{"ckpt_name":"v1-5-pruned.ckpt"}}}'
        items = WorkflowScanner().scan(document)

        assert len(items) == 1
        assert items[0].raw_name == "v1-5-pruned.ckpt"
        assert items[0].is_node is False

    def test_model_extension_under_arbitrary_key(self, execution_workflow):
        items = WorkflowScanner().scan_data(execution_workflow)
        names = _names(items)

        assert "ip-adapter_sd15.safetensors" in names
        assert "IPAdapterAdvanced" in names
        assert "KSampler" not in names

    def test_file_key_without_extension(self):
        data = {"1": {"class_type": "LoadImage", "inputs": {"image": "example.png"}}}
        items = WorkflowScanner().scan_data(data)
        assert _names(items) == ["example.png"]

    def test_non_string_inputs_ignored(self):
        data = {"1": {"class_type": "KSampler", "inputs": {"model": ["4", 0], "ckpt_name": 3}}}
        assert WorkflowScanner().scan_data(data) == []


class TestGraphForm:
    """Tests for editor (graph) form documents."""

    def test_nodes_and_widget_files(self, graph_workflow):
        items = WorkflowScanner().scan_data(graph_workflow)

        assert _names(items) == [
            "sd_xl_base_1.0.safetensors",
            "detail_tweaker.safetensors",
            "VHS_VideoCombine",
        ]
        assert [i.is_node for i in items] == [False, False, True]

    def test_prefix_heuristic_excludes_node(self, graph_workflow):
        names = _names(WorkflowScanner().scan_data(graph_workflow))
        assert "ComfyUI_Internal_Helper" not in names

    def test_widget_strings_without_extension_ignored(self):
        data = {"nodes": [{"type": "KSampler", "widgets_values": ["euler", "normal"]}]}
        assert WorkflowScanner().scan_data(data) == []


class TestDenylist:
    """Core nodes never show up in either form."""

    @pytest.mark.parametrize("node_type", ["KSampler", "CheckpointLoaderSimple", "LoraLoader", "VAEDecode"])
    def test_core_node_excluded_both_forms(self, node_type):
        assert node_type in CORE_NODE_TYPES
        scanner = WorkflowScanner()
        graph = {"nodes": [{"type": node_type}]}
        execution = {"1": {"class_type": node_type, "inputs": {}}}

        assert scanner.scan_data(graph) == []
        assert scanner.scan_data(execution) == []


class TestDeduplication:
    """Tests for trimming and first-occurrence dedupe."""

    def test_no_duplicate_raw_names(self):
        data = {
            "1": {"class_type": "MyNode", "inputs": {"ckpt_name": "a.safetensors"}},
            "2": {"class_type": "MyNode", "inputs": {"ckpt_name": "a.safetensors"}},
            "3": {"class_type": "Other", "inputs": {"lora_name": " a.safetensors "}},
        }
        items = WorkflowScanner().scan_data(data)
        names = _names(items)

        assert len(names) == len(set(names))
        assert names == ["MyNode", "a.safetensors", "Other"]

    def test_first_occurrence_wins(self):
        """A name seen first as a file stays a file item."""
        data = {
            "nodes": [
                {"type": "Loader", "widgets_values": ["Thing.safetensors"]},
                {"type": "Thing.safetensors"},
            ]
        }
        items = WorkflowScanner().scan_data(data)
        thing = [i for i in items if i.raw_name == "Thing.safetensors"]

        assert len(thing) == 1
        assert thing[0].is_node is False

    def test_blank_names_dropped(self):
        data = {"1": {"class_type": "  ", "inputs": {"image": "   "}}}
        assert WorkflowScanner().scan_data(data) == []


class TestErrors:
    """Tests for malformed input."""

    def test_invalid_json(self):
        with pytest.raises(ParseError):
            WorkflowScanner().scan("{not json")

    def test_non_object_document(self):
        with pytest.raises(ParseError):
            WorkflowScanner().scan("[1, 2, 3]")

    def test_empty_result_is_not_an_error(self):
        assert WorkflowScanner().scan("{}") == []

    def test_scan_missing_file(self, tmp_path):
        with pytest.raises(ParseError):
            WorkflowScanner().scan_file(tmp_path / "missing.json")


class TestCoreNodePolicy:
    """Tests for the injectable core-node policy."""

    def test_extended_policy(self):
        policy = CoreNodePolicy().extended(["MyStockNode"], ["Stock_"])

        assert policy("MyStockNode") is True
        assert policy("Stock_Anything") is True
        assert policy("KSampler") is True
        assert policy("VHS_VideoCombine") is False

    def test_any_predicate_accepted(self):
        scanner = WorkflowScanner(core_policy=lambda node_type: node_type.startswith("VHS_"))
        data = {"1": {"class_type": "VHS_LoadVideo", "inputs": {}},
                "2": {"class_type": "KSampler", "inputs": {}}}

        assert _names(scanner.scan_data(data)) == ["KSampler"]


class TestHelpers:
    """Tests for module helpers."""

    @pytest.mark.parametrize("value,expected", [
        ("model.SAFETENSORS", True),
        ("x.ckpt", True),
        ("x.pth", True),
        ("x.bin", True),
        ("x.png", False),
        ("safetensors", False),
    ])
    def test_is_model_filename(self, value, expected):
        assert is_model_filename(value) is expected

    def test_scan_workflow_file(self, write_workflow, execution_workflow):
        path = write_workflow(execution_workflow)
        names = _names(scan_workflow_file(path))
        assert "v1-5-pruned.ckpt" in names

    def test_scan_file_matches_scan(self, write_workflow, graph_workflow):
        path = write_workflow(graph_workflow)
        scanner = WorkflowScanner()
        assert _names(scanner.scan_file(path)) == _names(scanner.scan(json.dumps(graph_workflow)))
