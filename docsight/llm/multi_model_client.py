# docsight/llm/multi_model_client.py

import os
import logging
import threading
import time
from typing import Optional, Dict

from openai import OpenAI
import google.generativeai as genai
from transformers import pipeline

from docsight.config import (
    GEMINI_MODEL,
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_TEMPERATURE,
    LOCAL_MODEL,
)
from docsight.prompts.system_prompts import (
    DOCUMENT_ANALYST_SYSTEM_PROMPT,
    LOCAL_MODEL_SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)


class MultiModelLLMClient:
    """
    Multi-provider LLM client.

    Fallback order (STRICT):

    1. OpenAI (primary)
    2. Gemini (secondary)
    3. Local FLAN-T5 (failsafe, loaded on first use)

    Raises RuntimeError only when every provider is unavailable or failed.
    """

    def __init__(self, enable_local: bool = True):

        self.openai: Optional[OpenAI] = None
        self.gemini_model = None
        self.local_model = None

        self.openai_available = False
        self.gemini_available = False
        self.local_enabled = enable_local

        self._local_lock = threading.Lock()

        self._init_openai()
        self._init_gemini()

        logger.info(
            "LLM initialization complete",
            extra=self.get_usage_stats(),
        )

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def _init_openai(self):

        key = os.getenv("OPENAI_API_KEY")

        if not key:
            logger.warning("OpenAI API key missing")
            return

        try:

            self.openai = OpenAI(api_key=key)
            self.openai_available = True

            logger.info("OpenAI initialized successfully")

        except Exception as e:

            logger.error(
                "OpenAI initialization failed",
                extra={"error": str(e)},
            )

    def _init_gemini(self):

        key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")

        if not key:
            logger.warning("Gemini API key missing")
            return

        try:

            genai.configure(api_key=key)

            self.gemini_model = genai.GenerativeModel(model_name=GEMINI_MODEL)
            self.gemini_available = True

            logger.info("Gemini initialized successfully")

        except Exception as e:

            logger.error(
                "Gemini initialization failed",
                extra={"error": str(e)},
            )

    def _ensure_local(self) -> bool:

        if not self.local_enabled:
            return False

        with self._local_lock:

            if self.local_model is not None:
                return True

            try:

                self.local_model = pipeline(
                    "text2text-generation",
                    model=LOCAL_MODEL,
                    device=-1,
                )

                logger.info("Local model initialized successfully")

                return True

            except Exception as e:

                logger.error(
                    "Local model initialization failed",
                    extra={"error": str(e)},
                )

                self.local_enabled = False

                return False

    # ============================================================
    # PUBLIC API
    # ============================================================

    def generate(
        self,
        prompt: str,
        system_prompt: str = DOCUMENT_ANALYST_SYSTEM_PROMPT,
        max_tokens: int = LLM_MAX_TOKENS,
        temperature: float = LLM_TEMPERATURE,
    ) -> str:

        logger.info(
            "LLM request started",
            extra={**self.get_usage_stats(), "prompt_length": len(prompt)},
        )

        if self.openai_available:

            try:

                return self._timed_call(
                    "openai",
                    self._generate_openai,
                    prompt,
                    system_prompt,
                    max_tokens,
                    temperature,
                )

            except Exception as e:

                logger.warning("OpenAI failed", extra={"error": str(e)})

        if self.gemini_available:

            try:

                return self._timed_call(
                    "gemini",
                    self._generate_gemini,
                    prompt,
                    system_prompt,
                    max_tokens,
                    temperature,
                )

            except Exception as e:

                logger.warning("Gemini failed", extra={"error": str(e)})

        if self._ensure_local():

            logger.info("Using local fallback model")

            return self._timed_call(
                "local",
                self._generate_local,
                prompt,
                system_prompt,
                max_tokens,
                temperature,
            )

        raise RuntimeError("No LLM backend available")

    # ============================================================
    # PROVIDERS
    # ============================================================

    def _generate_openai(self, prompt, system_prompt, max_tokens, temperature) -> str:

        response = self.openai.chat.completions.create(
            model=LLM_MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )

        text = response.choices[0].message.content or ""

        return text.strip()

    def _generate_gemini(self, prompt, system_prompt, max_tokens, temperature) -> str:

        response = self.gemini_model.generate_content(
            f"{system_prompt}\n\n{prompt}",
            generation_config={
                "max_output_tokens": max_tokens,
                "temperature": temperature,
            },
        )

        if not response or not response.text:
            raise RuntimeError("Gemini returned empty response")

        return response.text.strip()

    def _generate_local(self, prompt, system_prompt, max_tokens, temperature) -> str:

        simplified_prompt = f"{LOCAL_MODEL_SYSTEM_PROMPT}\n\n{prompt[:1000]}"

        result = self.local_model(
            simplified_prompt,
            max_length=min(max_tokens, 512),
            do_sample=False,
        )

        return result[0]["generated_text"].strip()

    # ============================================================
    # LATENCY OBSERVABILITY
    # ============================================================

    def _timed_call(self, provider: str, fn, *args):

        start = time.time()

        result = fn(*args)

        logger.info(
            "LLM provider success",
            extra={
                "provider": provider,
                "latency_seconds": round(time.time() - start, 3),
            },
        )

        return result

    # ============================================================
    # STATUS
    # ============================================================

    def get_usage_stats(self) -> Dict[str, bool]:

        return {
            "openai_available": self.openai_available,
            "gemini_available": self.gemini_available,
            "local_available": self.local_enabled,
        }

    def list_models(self) -> Dict[str, Optional[str]]:

        return {
            "openai": LLM_MODEL if self.openai_available else None,
            "gemini": GEMINI_MODEL if self.gemini_available else None,
            "local": LOCAL_MODEL if self.local_enabled else None,
        }
