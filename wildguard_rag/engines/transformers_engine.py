"""On-device Hugging Face transformers engine."""

from __future__ import annotations

import logging

from wildguard_rag.config import SamplingConfig
from wildguard_rag.engines.base import Engine, EngineRegistry, Session

logger = logging.getLogger(__name__)

try:
    import torch
    from transformers import AutoModelForCausalLM, AutoTokenizer

    _HAS_TRANSFORMERS = True
except ImportError:  # pragma: no cover
    _HAS_TRANSFORMERS = False


@EngineRegistry.register("transformers")
class TransformersEngine(Engine):
    """Causal language model loaded locally with ``transformers``.

    Parameters
    ----------
    model : str
        Hugging Face model id or local directory (e.g. ``"google/gemma-3-1b-it"``).
    max_tokens : int
        Maximum new tokens per response.
    max_top_k : int
        Upper bound for per-session top-k.
    device : str
        ``"cpu"``, ``"cuda"`` or ``"mps"``.
    torch_dtype : str | None
        Optional dtype name forwarded to ``from_pretrained``.
    """

    name = "transformers"

    def __init__(
        self,
        model: str = "google/gemma-3-1b-it",
        *,
        max_tokens: int = 800,
        max_top_k: int = 40,
        device: str = "cpu",
        torch_dtype: str | None = None,
    ) -> None:
        if not _HAS_TRANSFORMERS:
            msg = "The 'transformers' package is required: pip install transformers torch"
            raise ImportError(msg)
        super().__init__(model, max_tokens=max_tokens, max_top_k=max_top_k, device=device)
        logger.debug("Loading causal LM from %s on %s", model, device)
        kwargs = {"torch_dtype": torch_dtype} if torch_dtype else {}
        self.tokenizer = AutoTokenizer.from_pretrained(model)
        self.lm = AutoModelForCausalLM.from_pretrained(model, **kwargs).to(device)
        self.lm.eval()
        if self.tokenizer.pad_token is None:
            self.tokenizer.pad_token = self.tokenizer.eos_token

    def create_session(self, sampling: SamplingConfig) -> TransformersSession:
        return TransformersSession(self, sampling)

    def close(self) -> None:
        self.lm = None


class TransformersSession(Session):
    """Generation session bound to a :class:`TransformersEngine`."""

    def __init__(self, engine: TransformersEngine, sampling: SamplingConfig) -> None:
        super().__init__(sampling)
        self._engine = engine

    def generate(self, prompt: str) -> str:
        self._ensure_open()
        engine = self._engine
        if engine.lm is None:
            msg = "Engine has been closed"
            raise RuntimeError(msg)

        text = prompt
        if getattr(engine.tokenizer, "chat_template", None):
            text = engine.tokenizer.apply_chat_template(
                [{"role": "user", "content": prompt}], tokenize=False, add_generation_prompt=True
            )
        inputs = engine.tokenizer(text, return_tensors="pt").to(engine.device)

        do_sample = self.sampling.temperature > 0
        with torch.no_grad():
            outputs = engine.lm.generate(
                **inputs,
                max_new_tokens=engine.max_tokens,
                do_sample=do_sample,
                temperature=self.sampling.temperature if do_sample else None,
                top_k=engine.clamp_top_k(self.sampling.top_k) if do_sample else None,
                top_p=self.sampling.top_p if do_sample else None,
                pad_token_id=engine.tokenizer.pad_token_id,
            )

        # Decode only the generated tokens
        generated = outputs[0, inputs["input_ids"].shape[1] :]
        return engine.tokenizer.decode(generated, skip_special_tokens=True)
