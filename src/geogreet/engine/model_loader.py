from __future__ import annotations
import logging

import torch
from transformers import AutoModelForCausalLM, AutoTokenizer
from geogreet.common.config import LocalModelConfig

logger = logging.getLogger(__name__)

def _dtype_from_str(s: str):
    s = s.lower()
    if s in ("float16", "fp16"):
        return torch.float16
    if s in ("bfloat16", "bf16"):
        return torch.bfloat16
    return torch.float32

def resolve_device(requested: str) -> str:
    if requested == "cuda" and torch.cuda.is_available():
        return "cuda"
    return "cpu"

def load_model_and_tokenizer(cfg: LocalModelConfig):
    """Returns (model, tokenizer, device). Falls back to cpu when cuda is unavailable."""
    tokenizer = AutoTokenizer.from_pretrained(cfg.model_id, use_fast=True)
    # Some GPT2-family tokenizers have no pad token.
    if tokenizer.pad_token is None:
        tokenizer.pad_token = tokenizer.eos_token

    dtype = _dtype_from_str(cfg.dtype)
    model = AutoModelForCausalLM.from_pretrained(cfg.model_id, torch_dtype=dtype)
    model.eval()

    device = resolve_device(cfg.device)
    if device != cfg.device:
        logger.warning("device %s unavailable, using %s", cfg.device, device)
    model.to(device)

    return model, tokenizer, device
