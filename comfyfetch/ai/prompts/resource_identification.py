"""
Resource Identification Prompt

Asks the model to classify workflow filenames and node types, suggest an
install folder and a download location. Answers that are not direct links
must be prefixed with "SEARCH: " or "PAGE: " so the URL validator can
reject them.
"""

import json
from typing import Any, Dict, List, Sequence

# fmt: off
RESOURCE_IDENTIFICATION_PROMPT = """\
You are an expert in Stable Diffusion and ComfyUI.
I have a list of filenames and node class types extracted from a ComfyUI workflow.

Your task is:
1. Identify the resource type. Use exactly one of: Checkpoint, LoRA, VAE, \
Embedding, ControlNet, Upscaler, Custom Node, Unknown.
2. Suggest the standard installation path relative to the ComfyUI root folder \
(e.g. "models/checkpoints", "models/loras", "custom_nodes").
3. Suggest a likely download URL.
   - For models (Checkpoint, LoRA, VAE, etc.): strictly prioritize direct \
download links from platforms like Civitai or Hugging Face. The URL should \
point directly to the model file if possible.
   - For custom nodes: always provide the full GitHub repository URL.
   - Fallback: if no direct download URL or repository URL is obvious, give a \
search query prefixed with "SEARCH: " or a landing page prefixed with "PAGE: ".
4. Classify the system requirement: "GPU" for heavy model files that use VRAM, \
"CPU" for custom nodes and scripts.
5. Estimate the file size (e.g. "2GB" for checkpoints, "144MB" for LoRAs, \
"50KB" for nodes). Use "N/A" if unknown.

Return ONLY a JSON array, one object per input item, each with the keys:
rawName (exactly as given), name, type, targetPath, downloadUrl, computeType, \
fileSize, description.
No markdown fences, no explanation.

Input Items:
"""
# fmt: on


def batch_payload(items: Sequence[Any]) -> List[Dict[str, Any]]:
    """Reduce scanned items (models or dicts) to {rawName, isNode} pairs."""
    payload = []
    for item in items:
        if isinstance(item, dict):
            raw_name = item.get("rawName", item.get("raw_name", ""))
            is_node = item.get("isNode", item.get("is_node", False))
        else:
            raw_name = item.raw_name
            is_node = item.is_node
        payload.append({"rawName": raw_name, "isNode": bool(is_node)})
    return payload


def build_identification_prompt(items: Sequence[Any]) -> str:
    """Build the full prompt with the batch appended as JSON."""
    return f"{RESOURCE_IDENTIFICATION_PROMPT}{json.dumps(batch_payload(items))}"
