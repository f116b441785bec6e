"""
Unit tests for the resource resolver.
"""

import time

import pytest

from comfyfetch.core.errors import EnrichmentBatchError
from comfyfetch.core.models import ComputeType, ExternalGuess, ResourceType, ScannedItem
from comfyfetch.workflows.resolver import (
    DEFAULT_CONFIDENCE,
    UNRESOLVED_CONFIDENCE,
    ResourceResolver,
    partition,
)


def _items(count, prefix="model"):
    return [ScannedItem(raw_name=f"{prefix}_{i}.safetensors") for i in range(count)]


def _echo_collaborator(batch):
    """Guess every item as a checkpoint on Hugging Face."""
    return {
        item.raw_name: {
            "rawName": item.raw_name,
            "name": item.raw_name.upper(),
            "type": "Checkpoint",
            "targetPath": "models/checkpoints",
            "downloadUrl": f"https://huggingface.co/x/y/resolve/main/{item.raw_name}",
        }
        for item in batch
    }


class TestResolve:
    """Tests for ResourceResolver.resolve."""

    def test_identity_comes_from_scan(self):
        item = ScannedItem(raw_name="foo.safetensors", is_node=False)
        guess = ExternalGuess.model_validate({
            "rawName": "foo.safetensors",
            "name": "Foo",
            "type": "LoRA",
            "downloadUrl": "https://civitai.com/api/download/models/1",
        })

        [resource] = ResourceResolver().resolve([item], {"foo.safetensors": guess})

        assert resource.id == item.id
        assert resource.raw_name == "foo.safetensors"
        assert resource.is_node is False
        assert resource.type is ResourceType.LORA
        assert resource.name == "Foo"

    def test_guess_identity_fields_are_ignored(self):
        item = ScannedItem(raw_name="Node", is_node=True)
        guess = {"rawName": "SomethingElse", "id": "bogus", "isNode": False, "type": "Custom Node"}

        [resource] = ResourceResolver().resolve([item], {"Node": guess})

        assert resource.id == item.id
        assert resource.raw_name == "Node"
        assert resource.is_node is True

    def test_missing_guess_gives_unknown(self):
        item = ScannedItem(raw_name="mystery.bin")
        [resource] = ResourceResolver().resolve([item], {})

        assert resource.type is ResourceType.UNKNOWN
        assert resource.download_url == ""
        assert resource.confidence == UNRESOLVED_CONFIDENCE
        assert resource.compute_type is ComputeType.GPU

    def test_defaults_for_absent_fields(self):
        item = ScannedItem(raw_name="Pack", is_node=True)
        [resource] = ResourceResolver().resolve(
            [item], {"Pack": {"type": "CustomNode", "downloadUrl": "https://github.com/a/b"}}
        )

        assert resource.compute_type is ComputeType.CPU
        assert resource.file_size == "N/A"

    def test_defaulted_compute_type_follows_reclassification(self):
        item = ScannedItem(raw_name="Pack", is_node=True)
        [resource] = ResourceResolver().resolve(
            [item], {"Pack": {"type": "Checkpoint", "downloadUrl": "https://huggingface.co/a/b"}}
        )
        assert resource.compute_type is ComputeType.GPU

        resource.type = ResourceType.CUSTOM_NODE
        assert resource.compute_type is ComputeType.CPU

    def test_fixed_confidence(self):
        items = _items(3)
        guesses = _echo_collaborator(items)
        guesses[items[0].raw_name]["confidence"] = 0.1

        resources = ResourceResolver(confidence=0.75).resolve(items, guesses)

        assert [r.confidence for r in resources] == [0.75, 0.75, 0.75]

    def test_default_confidence(self):
        [resource] = ResourceResolver().resolve(_items(1), _echo_collaborator(_items(1)))
        assert resource.confidence == DEFAULT_CONFIDENCE

    def test_malformed_guess_treated_as_missing(self):
        item = ScannedItem(raw_name="x.ckpt")
        [resource] = ResourceResolver().resolve([item], {"x.ckpt": {"name": ["not", "a", "string"]}})
        assert resource.type is ResourceType.UNKNOWN

    def test_order_follows_items(self):
        items = _items(5)
        guesses = dict(reversed(list(_echo_collaborator(items).items())))
        resources = ResourceResolver().resolve(items, guesses)
        assert [r.raw_name for r in resources] == [i.raw_name for i in items]

    def test_invalid_confidence_rejected(self):
        with pytest.raises(ValueError):
            ResourceResolver(confidence=2.0)


class TestPartition:
    """Tests for batch partitioning."""

    def test_partition_sizes(self):
        batches = partition(_items(45), 20)
        assert [len(b) for b in batches] == [20, 20, 5]

    def test_small_input_single_batch(self):
        assert len(partition(_items(20), 20)) == 1

    def test_empty(self):
        assert partition([], 20) == []

    def test_bad_size(self):
        with pytest.raises(ValueError):
            partition(_items(2), 0)


class TestEnrich:
    """Tests for batched enrichment."""

    def test_batches_concatenated_in_order(self):
        items = _items(45)
        calls = []

        def collaborator(batch):
            calls.append(len(batch))
            return _echo_collaborator(batch)

        result = ResourceResolver().enrich(items, collaborator)

        assert calls == [20, 20, 5]
        assert result.batch_count == 3
        assert result.is_partial is False
        assert [r.raw_name for r in result.resources] == [i.raw_name for i in items]

    def test_failing_batch_is_skipped(self):
        items = _items(45)

        def collaborator(batch):
            if batch[0].raw_name == items[20].raw_name:
                raise EnrichmentBatchError("unparsable answer")
            return _echo_collaborator(batch)

        result = ResourceResolver().enrich(items, collaborator)

        assert len(result.resources) == 25
        assert result.is_partial is True
        assert len(result.failed_batches) == 1
        failed = result.failed_batches[0]
        assert failed.index == 1
        assert failed.raw_names == [i.raw_name for i in items[20:40]]
        assert "unparsable" in failed.error
        assert result.missing_names == failed.raw_names

    def test_unexpected_exception_is_recorded(self):
        def collaborator(batch):
            raise RuntimeError("boom")

        result = ResourceResolver().enrich(_items(3), collaborator)

        assert result.resources == []
        assert result.failed_batches[0].error == "boom"

    def test_non_mapping_answer_fails_batch(self):
        result = ResourceResolver().enrich(_items(2), lambda batch: ["nope"])
        assert result.is_partial is True

    def test_concurrent_batches_keep_order(self):
        items = _items(60)

        def collaborator(batch):
            # first batch finishes last
            time.sleep(0.05 if batch[0].raw_name == items[0].raw_name else 0.01)
            if batch[0].raw_name == items[20].raw_name:
                raise EnrichmentBatchError("middle batch failed")
            return _echo_collaborator(batch)

        result = ResourceResolver(max_workers=3).enrich(items, collaborator)

        expected = [i.raw_name for i in items[:20] + items[40:]]
        assert [r.raw_name for r in result.resources] == expected
        assert [b.index for b in result.failed_batches] == [1]

    def test_empty_items(self):
        result = ResourceResolver().enrich([], _echo_collaborator)
        assert result.resources == []
        assert result.batch_count == 0
