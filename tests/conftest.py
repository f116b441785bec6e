"""
Pytest Configuration and Global Fixtures.

Provides:
- Sample workflow documents in both saved shapes
- Resource factories
- An isolated comfyfetch data directory per test
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

from comfyfetch.config import reset_config
from comfyfetch.core.models import EnrichedResource, ResourceType


# =============================================================================
# Workflow Fixtures
# =============================================================================

@pytest.fixture
def graph_workflow() -> Dict[str, Any]:
    """Workflow in the editor's saved (graph) form."""
    return {
        "last_node_id": 5,
        "nodes": [
            {
                "id": 1,
                "type": "CheckpointLoaderSimple",
                "widgets_values": ["sd_xl_base_1.0.safetensors"],
            },
            {
                "id": 2,
                "type": "LoraLoader",
                "widgets_values": ["detail_tweaker.safetensors", 1.0, 1.0],
            },
            {
                "id": 3,
                "type": "VHS_VideoCombine",
                "widgets_values": {"frame_rate": 8},
            },
            {
                "id": 4,
                "type": "KSampler",
                "widgets_values": [42, "randomize", 20, 7.0, "euler", "normal", 1.0],
            },
            {
                "id": 5,
                "type": "ComfyUI_Internal_Helper",
                "widgets_values": [],
            },
        ],
        "links": [],
    }


@pytest.fixture
def execution_workflow() -> Dict[str, Any]:
    """Workflow in the API (execution) form."""
    return {
        "4": {
            "class_type": "CheckpointLoaderSimple",
            "inputs": {"ckpt_name": "v1-5-pruned.ckpt"},
        },
        "7": {
            "class_type": "IPAdapterAdvanced",
            "inputs": {"weight": 0.8, "ipadapter_file": "ip-adapter_sd15.safetensors"},
        },
        "9": {
            "class_type": "KSampler",
            "inputs": {"seed": 1, "model": ["4", 0]},
        },
    }


@pytest.fixture
def write_workflow(tmp_path: Path) -> Callable[[Any, str], Path]:
    """Write a workflow object to a JSON file under tmp_path."""
    def _write(data: Any, name: str = "workflow.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write


# =============================================================================
# Resource Fixtures
# =============================================================================

@pytest.fixture
def make_resource() -> Callable[..., EnrichedResource]:
    """Factory for EnrichedResource with sensible defaults."""
    def _make(
        raw_name: str = "model.safetensors",
        type: ResourceType = ResourceType.CHECKPOINT,
        download_url: str = "https://huggingface.co/org/repo/resolve/main/model.safetensors",
        **kwargs,
    ) -> EnrichedResource:
        kwargs.setdefault("name", raw_name)
        kwargs.setdefault("is_node", type is ResourceType.CUSTOM_NODE)
        return EnrichedResource(
            raw_name=raw_name,
            type=type,
            download_url=download_url,
            **kwargs,
        )
    return _make


@pytest.fixture
def custom_node(make_resource) -> EnrichedResource:
    return make_resource(
        raw_name="BarNode",
        name="Bar Nodes",
        type=ResourceType.CUSTOM_NODE,
        download_url="https://github.com/foo/bar",
        target_path="custom_nodes",
    )


@pytest.fixture
def checkpoint(make_resource) -> EnrichedResource:
    return make_resource(
        raw_name="sd_xl_base_1.0.safetensors",
        name="SDXL Base",
        type=ResourceType.CHECKPOINT,
        download_url="https://huggingface.co/stabilityai/stable-diffusion-xl-base-1.0/resolve/main/sd_xl_base_1.0.safetensors",
        target_path="models/checkpoints",
    )


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point comfyfetch at an empty data directory for the duration of a test."""
    home = tmp_path / "comfyfetch-home"
    monkeypatch.setenv("COMFYFETCH_HOME", str(home))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    reset_config()
    yield home
    reset_config()
