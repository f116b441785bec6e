"""
Rule-Based Fallback Provider

Offline guesses for scanned resources:
- Known custom node types mapped to their GitHub repositories
- Known model files mapped to Hugging Face download links
- Filename heuristics for the resource type and install folder

Anything it cannot place gets a "SEARCH: ..." URL so the validator flags
it for review instead of emitting a broken download.
"""

import logging
import re
from typing import Any, Dict, Optional

from ...core.models import DEFAULT_TARGET_PATHS, ResourceType
from .base import AIProvider, ProviderResult, ProviderStatus

logger = logging.getLogger(__name__)


# Custom node type -> (display name, repository)
KNOWN_CUSTOM_NODES = {
    "VHS_VideoCombine": ("ComfyUI-VideoHelperSuite", "https://github.com/Kosinkadink/ComfyUI-VideoHelperSuite"),
    "VHS_LoadVideo": ("ComfyUI-VideoHelperSuite", "https://github.com/Kosinkadink/ComfyUI-VideoHelperSuite"),
    "UnetLoaderGGUF": ("ComfyUI-GGUF", "https://github.com/city96/ComfyUI-GGUF"),
    "LoaderGGUF": ("ComfyUI-GGUF", "https://github.com/city96/ComfyUI-GGUF"),
    "ClownsharKSampler_Beta": ("RES4LYF", "https://github.com/ClownsharkBatwing/RES4LYF"),
    "ReAuraPatcher": ("RES4LYF", "https://github.com/ClownsharkBatwing/RES4LYF"),
    "IPAdapterAdvanced": ("ComfyUI_IPAdapter_plus", "https://github.com/cubiq/ComfyUI_IPAdapter_plus"),
    "IPAdapterUnifiedLoader": ("ComfyUI_IPAdapter_plus", "https://github.com/cubiq/ComfyUI_IPAdapter_plus"),
    "FaceDetailer": ("ComfyUI-Impact-Pack", "https://github.com/ltdrdata/ComfyUI-Impact-Pack"),
    "UltralyticsDetectorProvider": ("ComfyUI-Impact-Subpack", "https://github.com/ltdrdata/ComfyUI-Impact-Subpack"),
    "CR Apply LoRA Stack": ("ComfyUI_Comfyroll_CustomNodes", "https://github.com/Suzie1/ComfyUI_Comfyroll_CustomNodes"),
    "Efficient Loader": ("efficiency-nodes-comfyui", "https://github.com/jags111/efficiency-nodes-comfyui"),
    "KSampler (Efficient)": ("efficiency-nodes-comfyui", "https://github.com/jags111/efficiency-nodes-comfyui"),
    "DWPreprocessor": ("comfyui_controlnet_aux", "https://github.com/Fannovel16/comfyui_controlnet_aux"),
    "CannyEdgePreprocessor": ("comfyui_controlnet_aux", "https://github.com/Fannovel16/comfyui_controlnet_aux"),
    "Image Save": ("was-node-suite-comfyui", "https://github.com/WASasquatch/was-node-suite-comfyui"),
    "easy fullLoader": ("ComfyUI-Easy-Use", "https://github.com/yolain/ComfyUI-Easy-Use"),
    "ShowText|pysssss": ("ComfyUI-Custom-Scripts", "https://github.com/pythongosssss/ComfyUI-Custom-Scripts"),
}

# Model file -> (type, download URL, approximate size)
KNOWN_MODELS = {
    "v1-5-pruned-emaonly.safetensors": (
        ResourceType.CHECKPOINT,
        "https://huggingface.co/stable-diffusion-v1-5/stable-diffusion-v1-5/resolve/main/v1-5-pruned-emaonly.safetensors",
        "4.27GB",
    ),
    "sd_xl_base_1.0.safetensors": (
        ResourceType.CHECKPOINT,
        "https://huggingface.co/stabilityai/stable-diffusion-xl-base-1.0/resolve/main/sd_xl_base_1.0.safetensors",
        "6.94GB",
    ),
    "sdxl_vae.safetensors": (
        ResourceType.VAE,
        "https://huggingface.co/stabilityai/sdxl-vae/resolve/main/sdxl_vae.safetensors",
        "335MB",
    ),
    "vae-ft-mse-840000-ema-pruned.safetensors": (
        ResourceType.VAE,
        "https://huggingface.co/stabilityai/sd-vae-ft-mse-original/resolve/main/vae-ft-mse-840000-ema-pruned.safetensors",
        "335MB",
    ),
    "4x-UltraSharp.pth": (
        ResourceType.UPSCALER,
        "https://huggingface.co/lokCX/4x-Ultrasharp/resolve/main/4x-UltraSharp.pth",
        "67MB",
    ),
    "RealESRGAN_x4plus.pth": (
        ResourceType.UPSCALER,
        "https://github.com/xinntao/Real-ESRGAN/releases/download/v0.1.0/RealESRGAN_x4plus.pth",
        "67MB",
    ),
}

# Filename pattern -> resource type, first match wins
FILENAME_PATTERNS = [
    (re.compile(r"lora|lycoris|locon", re.IGNORECASE), ResourceType.LORA),
    (re.compile(r"vae", re.IGNORECASE), ResourceType.VAE),
    (re.compile(r"control|canny|depth|openpose|t2i[-_]?adapter", re.IGNORECASE), ResourceType.CONTROLNET),
    (re.compile(r"esrgan|upscal|\b\d+x[-_]|[-_]x\d\b|^\d+x", re.IGNORECASE), ResourceType.UPSCALER),
    (re.compile(r"embedding|easynegative|negative", re.IGNORECASE), ResourceType.EMBEDDING),
    (re.compile(r"\.(safetensors|ckpt)$", re.IGNORECASE), ResourceType.CHECKPOINT),
]

TYPICAL_SIZES = {
    ResourceType.CHECKPOINT: "2GB",
    ResourceType.LORA: "144MB",
    ResourceType.VAE: "335MB",
    ResourceType.EMBEDDING: "100KB",
    ResourceType.CONTROLNET: "1.4GB",
    ResourceType.UPSCALER: "67MB",
    ResourceType.CUSTOM_NODE: "50KB",
}


def classify_filename(filename: str) -> ResourceType:
    """Guess a model type from its filename."""
    for pattern, resource_type in FILENAME_PATTERNS:
        if pattern.search(filename):
            return resource_type
    return ResourceType.UNKNOWN


def _display_name(raw_name: str) -> str:
    stem = re.sub(r"\.[A-Za-z0-9]+$", "", raw_name.replace("\\", "/").split("/")[-1])
    return re.sub(r"[_]+", " ", stem).strip() or raw_name


class RuleBasedProvider(AIProvider):
    """
    Offline fallback provider.

    Always available. Expects the raw batch (list of {rawName, isNode}
    dicts) rather than a prompt.
    """

    provider_id = "rule_based"
    wants_raw_input = True

    def __init__(self, model: str = "rules", endpoint: Optional[str] = None):
        super().__init__(model="rules", endpoint=None)

    def detect_availability(self) -> ProviderStatus:
        return ProviderStatus(
            provider_id=self.provider_id,
            available=True,
            version="1.0",
            models=["rules"],
        )

    def execute(self, prompt: Any, timeout: int = 60) -> ProviderResult:
        def _execute():
            logger.info("[ai-service] Executing with provider: rule_based")
            if not isinstance(prompt, (list, tuple)):
                return self._failure("Rule-based provider expects a list of {rawName, isNode} entries")
            output = [self.guess(entry.get("rawName", ""), bool(entry.get("isNode"))) for entry in prompt]
            return ProviderResult(
                success=True,
                output=output,
                provider_id=self.provider_id,
                model=self.model,
            )

        return self._timed_execute(_execute)

    def guess(self, raw_name: str, is_node: bool) -> Dict[str, Any]:
        """Build a guess dict (camelCase keys, as the LLM providers return)."""
        if is_node:
            return self._guess_node(raw_name)
        return self._guess_model(raw_name)

    def _guess_node(self, raw_name: str) -> Dict[str, Any]:
        known = KNOWN_CUSTOM_NODES.get(raw_name)
        if known:
            name, url = known
            description = f"Custom node pack providing {raw_name}"
        else:
            name = raw_name
            url = f"SEARCH: {raw_name} ComfyUI custom node github"
            description = "Unrecognized custom node; repository needs manual lookup"
        return {
            "rawName": raw_name,
            "name": name,
            "type": ResourceType.CUSTOM_NODE.value,
            "targetPath": DEFAULT_TARGET_PATHS[ResourceType.CUSTOM_NODE],
            "downloadUrl": url,
            "computeType": "CPU",
            "fileSize": TYPICAL_SIZES[ResourceType.CUSTOM_NODE],
            "description": description,
        }

    def _guess_model(self, raw_name: str) -> Dict[str, Any]:
        basename = raw_name.replace("\\", "/").split("/")[-1]
        known = KNOWN_MODELS.get(basename)
        if known:
            resource_type, url, size = known
        else:
            resource_type = classify_filename(basename)
            url = f"SEARCH: {basename} download"
            size = TYPICAL_SIZES.get(resource_type, "N/A")
        return {
            "rawName": raw_name,
            "name": _display_name(raw_name),
            "type": resource_type.value,
            "targetPath": DEFAULT_TARGET_PATHS[resource_type],
            "downloadUrl": url,
            "computeType": "GPU",
            "fileSize": size,
            "description": f"{resource_type.value} file referenced by the workflow",
        }
