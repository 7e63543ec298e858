import httpx
from typing import Optional
import logging

log = logging.getLogger("LessonForge")


class LLMError(RuntimeError):
    """Raised when the text-generation backend fails or returns nothing."""


class LLMClient:
    """
    Multi-backend LLM client:
    - Default: local OpenAI-compatible server (e.g., Ollama)
    - If api_key is provided and openai_base_url is set: use the remote API
    - provider="gemini": Google Generative Language generateContent

    Supports:
    - OpenAI-style /chat/completions (local or remote)
    - OpenAI /responses (remote) with compatible parsing
    - Gemini /models/<model>:generateContent
    """

    def __init__(
        self,
        base_url: str,
        default_model: str,
        *,
        openai_base_url: Optional[str] = None,
        openai_default_model: Optional[str] = None,
        prefer_responses_api: bool = True,
        force_chat_completions: bool = False,
        provider: str = "local",
        timeout: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.default_model = default_model

        self.openai_base_url = (openai_base_url or "").rstrip("/") or None
        self.openai_default_model = openai_default_model or default_model

        self.prefer_responses_api = bool(prefer_responses_api)
        self.force_chat_completions = bool(force_chat_completions)

        self.provider = (provider or "local").strip().lower()
        self.timeout = timeout
        self._transport = transport

    def _is_openai_call(self, api_key: str) -> bool:
        return bool(api_key and self.openai_base_url)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _raise_for_status(r: httpx.Response) -> None:
        if r.status_code == 401:
            raise LLMError("Invalid API key (401).")
        if r.status_code >= 400:
            body = (r.text or "")[:500]
            log.error("LLM HTTP %s: %s", r.status_code, body)
            raise LLMError(f"LLM error: {r.status_code}")

    async def ask(
        self,
        api_key: str,
        prompt: str,
        system: str = "You are a helpful teaching assistant.",
        model: Optional[str] = None,
        max_tokens: int = 400,
        temperature: float = 0.2,
    ) -> str:
        api_key = (api_key or "").strip()
        system = system or "You are a helpful teaching assistant."

        if self.provider == "gemini":
            out = await self._ask_gemini(api_key, prompt, system, model, max_tokens, temperature)
        else:
            out = await self._ask_openai_compatible(api_key, prompt, system, model, max_tokens, temperature)

        if not out:
            raise LLMError("No content generated")
        return out

    async def _ask_gemini(
        self,
        api_key: str,
        prompt: str,
        system: str,
        model: Optional[str],
        max_tokens: int,
        temperature: float,
    ) -> str:
        if not api_key:
            raise LLMError("GEMINI_API_KEY not configured")
        if not self.base_url:
            raise LLMError("LLM misconfigured: missing base_url.")

        used_model = model or self.default_model
        url = f"{self.base_url}/models/{used_model}:generateContent"
        payload = {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": max_tokens,
                "temperature": temperature,
            },
        }

        async with self._client() as client:
            r = await client.post(url, params={"key": api_key}, json=payload)
            log.info("Gemini response status: %s", r.status_code)
            self._raise_for_status(r)
            data = r.json()

        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            return ""
        content = (candidates[0] or {}).get("content") or {}
        parts = content.get("parts") or []
        texts = [str(p.get("text")) for p in parts if isinstance(p, dict) and p.get("text")]
        return "\n".join(texts).strip()

    async def _ask_openai_compatible(
        self,
        api_key: str,
        prompt: str,
        system: str,
        model: Optional[str],
        max_tokens: int,
        temperature: float,
    ) -> str:
        use_openai = self._is_openai_call(api_key)

        if use_openai:
            used_model = model or self.openai_default_model
            base = self.openai_base_url
        else:
            used_model = model or self.default_model
            base = self.base_url

        if not base:
            raise LLMError("LLM misconfigured: missing base_url.")

        headers = {"Content-Type": "application/json"}
        if use_openai:
            headers["Authorization"] = f"Bearer {api_key}"

        async with self._client() as client:
            if use_openai and self.prefer_responses_api and not self.force_chat_completions:
                url = f"{base}/responses"
                payload = {
                    "model": used_model,
                    "input": [
                        {"role": "system", "content": system},
                        {"role": "user", "content": prompt},
                    ],
                    "temperature": temperature,
                    "max_output_tokens": max_tokens,
                }

                r = await client.post(url, headers=headers, json=payload)
                self._raise_for_status(r)
                data = r.json()

                if isinstance(data, dict) and "output_text" in data:
                    out = str(data.get("output_text") or "").strip()
                    if out:
                        return out

                if isinstance(data, dict) and isinstance(data.get("output"), list):
                    texts = []
                    for item in data["output"]:
                        content = item.get("content") if isinstance(item, dict) else None
                        if isinstance(content, list):
                            for part in content:
                                if isinstance(part, dict) and "text" in part:
                                    texts.append(str(part["text"]))
                    return "\n".join([t for t in texts if t]).strip()

                return ""

            url = f"{base}/chat/completions"
            payload = {
                "model": used_model,
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                "max_tokens": max_tokens,
                "temperature": temperature,
            }

            r = await client.post(url, headers=headers, json=payload)
            self._raise_for_status(r)
            data = r.json()

        if isinstance(data, dict) and data.get("choices"):
            choice0 = data["choices"][0] or {}
            msg = choice0.get("message") or {}
            content = (msg.get("content") or "").strip()
            if content:
                return content
            return (choice0.get("text") or "").strip()

        if isinstance(data, dict) and "message" in data:
            msg = data["message"]
            if isinstance(msg, dict):
                return str(msg.get("content") or "").strip()
            return str(msg).strip()

        if isinstance(data, dict) and "response" in data:
            return str(data["response"]).strip()

        return ""


def build_llm_client(settings) -> LLMClient:
    provider = (getattr(settings, "LLM_PROVIDER", "") or "local").strip().lower()
    timeout = getattr(settings, "LLM_TIMEOUT_SEC", 60)

    if provider == "gemini":
        return LLMClient(
            base_url=settings.GEMINI_BASE_URL,
            default_model=settings.GEMINI_MODEL,
            provider="gemini",
            timeout=timeout,
        )
    if provider == "groq":
        return LLMClient(
            base_url=settings.GROQ_BASE_URL,
            default_model=settings.GROQ_MODEL,
            openai_base_url=settings.GROQ_BASE_URL,
            openai_default_model=settings.GROQ_MODEL,
            prefer_responses_api=False,
            force_chat_completions=True,
            provider="groq",
            timeout=timeout,
        )
    if provider == "openai":
        return LLMClient(
            base_url=settings.OPENAI_BASE_URL,
            default_model=settings.DEFAULT_MODEL,
            openai_base_url=settings.OPENAI_API_URL,
            openai_default_model=settings.OPENAI_MODEL,
            provider="openai",
            timeout=timeout,
        )
    return LLMClient(
        base_url=settings.OPENAI_BASE_URL,
        default_model=settings.DEFAULT_MODEL,
        provider="local",
        timeout=timeout,
    )


def api_key_for(settings) -> str:
    provider = (getattr(settings, "LLM_PROVIDER", "") or "local").strip().lower()
    if provider == "gemini":
        return (settings.GEMINI_API_KEY or "").strip()
    if provider == "groq":
        return (settings.GROQ_API_KEY or "").strip()
    if provider == "openai":
        return (settings.OPENAI_API_KEY or "").strip()
    return ""
