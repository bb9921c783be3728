from __future__ import annotations

import logging
import time

import torch

from geogreet.common.config import LocalModelConfig
from geogreet.engine.generator import GenerationError, TextGenerator

logger = logging.getLogger(__name__)


class LocalGenerator(TextGenerator):
    """Offline stand-in for the hosted model: greedy ``model.generate`` on a small HF causal LM."""

    name = "local"

    def __init__(self, model, tokenizer, *, device: str = "cpu", max_new_tokens: int = 64):
        self.model = model
        self.tokenizer = tokenizer
        self.device = device
        self.max_new_tokens = max_new_tokens

    @classmethod
    def from_config(cls, cfg: LocalModelConfig) -> "LocalGenerator":
        from geogreet.engine.model_loader import load_model_and_tokenizer

        model, tokenizer, device = load_model_and_tokenizer(cfg)
        logger.info("loaded local model %s on %s", cfg.model_id, device)
        return cls(model, tokenizer, device=device, max_new_tokens=cfg.max_new_tokens)

    @torch.inference_mode()
    def generate(self, prompt: str) -> str:
        enc = self.tokenizer(prompt, return_tensors="pt")
        input_ids = enc["input_ids"].to(self.device)
        attention_mask = enc.get("attention_mask")
        if attention_mask is not None:
            attention_mask = attention_mask.to(self.device)

        t0 = time.perf_counter()
        output_ids = self.model.generate(
            input_ids=input_ids,
            attention_mask=attention_mask,
            max_new_tokens=self.max_new_tokens,
            do_sample=False,
            pad_token_id=self.tokenizer.eos_token_id,
        )
        # generate() returns prompt + continuation
        new_ids = output_ids[0, input_ids.shape[1]:]
        text = self.tokenizer.decode(new_ids, skip_special_tokens=True).strip()
        if not text:
            raise GenerationError("local model produced no text")
        logger.debug("local generation: %d tokens in %.3fs", len(new_ids), time.perf_counter() - t0)
        return text
