from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional
from .errors import GenerationFailure, MalformedResponse
from .settings import settings

logger = logging.getLogger(__name__)


class CompletionClient:
	"""Thin async wrapper around an OpenAI-compatible /chat/completions endpoint."""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.ai_api_key
		self.model = model or settings.ai_model
		self.base_url = (base_url or settings.ai_base_url).rstrip("/")
		self.url = f"{self.base_url}/chat/completions"
		self._client = httpx.AsyncClient(timeout=settings.ai_timeout_seconds, transport=transport)

	async def complete(self, messages: List[Dict[str, str]], *, temperature: float) -> str:
		"""Send one chat completion and return the first choice's text ("" when absent)."""
		if not self.api_key:
			raise GenerationFailure("AI_API_KEY is not configured")
		headers = {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		}
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": messages,
			"temperature": temperature,
		}
		try:
			r = await self._client.post(self.url, headers=headers, json=payload)
		except httpx.RequestError as net_err:
			logger.error("AI request to %s failed: %s", self.url, net_err)
			raise GenerationFailure(f"AI request failed: {net_err}") from net_err
		if r.is_error:
			logger.error("AI error %s: %s", r.status_code, r.text)
			raise GenerationFailure(f"AI request failed: {r.status_code}")
		try:
			data = r.json()
		except ValueError as err:
			logger.error("Unexpected AI response: %s", r.text)
			raise MalformedResponse("Unexpected AI response") from err
		return _first_choice_content(data)

	async def aclose(self) -> None:
		await self._client.aclose()


def _first_choice_content(data: Any) -> str:
	if not isinstance(data, dict):
		return ""
	choices = data.get("choices") or []
	if not choices or not isinstance(choices[0], dict):
		return ""
	message = choices[0].get("message") or {}
	content = message.get("content") if isinstance(message, dict) else None
	return content if isinstance(content, str) else ""


async def get_completion_client():
	client = CompletionClient()
	try:
		yield client
	finally:
		await client.aclose()
