# consultify/services/ai_triage.py
import logging
from typing import Dict, List, Optional, Tuple

import requests

from consultify.config import HTTP_TIMEOUT_SECONDS, MISTRAL_API_KEY, MISTRAL_API_URL, MISTRAL_MODEL
from consultify.services.doctor_selection import TRIAGE_COMPLETE_MARKER, URGENT_TRIAGE_COMPLETE_MARKER

logger = logging.getLogger(__name__)

TRIAGE_SYSTEM_PROMPT = """You are a medical triage AI assistant for Consultify. Your role is to:

1. Gather the patient's symptoms conversationally and with empathy
2. Ask relevant follow-up questions to understand the severity and nature of the symptoms
3. Decide when you have enough information to recommend a doctor
4. NEVER provide a medical diagnosis or treatment advice
5. Always be caring and professional

Guidelines:
- Ask one question at a time
- Be empathetic and understanding
- Focus on gathering symptoms, not on diagnosis
- When you have enough information (after about 3 exchanges), finish with: "TRIAGE_COMPLETE: [brief summary of symptoms]"
- If the symptoms seem urgent, prioritise quickly: "URGENT_TRIAGE_COMPLETE: [brief summary]"

Start by greeting the patient and asking what their main concern is."""

FALLBACK_REPLY = (
    "I'm sorry, I'm having trouble connecting right now. "
    "Let me try to help you again in a moment."
)


class MistralChatClient:
    def __init__(self, api_key: str = MISTRAL_API_KEY, model: str = MISTRAL_MODEL, url: str = MISTRAL_API_URL):
        self.api_key = api_key
        self.model = model
        self.url = url

    def chat(self, turns: List[Dict[str, str]]) -> str:
        """Generate the assistant's next triage reply; degrades to FALLBACK_REPLY."""
        try:
            response = requests.post(
                self.url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": self.model,
                    "messages": [{"role": "system", "content": TRIAGE_SYSTEM_PROMPT}, *turns],
                },
                timeout=HTTP_TIMEOUT_SECONDS * 3,
            )
            response.raise_for_status()
            return response.json()["choices"][0]["message"]["content"]
        except (requests.RequestException, KeyError, IndexError, ValueError) as e:
            logger.error(f"AI generation error: {e}")
            return FALLBACK_REPLY


def find_completion_marker(text: str) -> Optional[str]:
    """Return the text from the first completion marker onward, or None."""
    positions = [
        text.find(marker)
        for marker in (URGENT_TRIAGE_COMPLETE_MARKER, TRIAGE_COMPLETE_MARKER)
        if marker in text
    ]
    if not positions:
        return None
    return text[min(positions):].strip()


def run_triage_turn(turns: List[Dict[str, str]], llm) -> Tuple[str, Optional[str]]:
    reply = llm.chat(turns)
    return reply, find_completion_marker(reply)


_llm_client: Optional[MistralChatClient] = None


def get_llm_client() -> MistralChatClient:
    global _llm_client
    if _llm_client is None:
        _llm_client = MistralChatClient()
    return _llm_client
