# tod_ai/agents/mentor_agent.py
"""Global AI mentor chat with per-conversation memory."""
from typing import Dict, List, Optional

from pydantic import BaseModel

from tod_ai.config import get_logger
from tod_ai.utils.model_router import GeminiRouter

logger = get_logger(__name__)

MENTOR_INSTRUCTION = (
    "You are Tod, a friendly and patient AI mentor for students. "
    "Explain concepts step by step, use short examples, and encourage the student. "
    "Keep answers focused and practical."
)

HINDI_INSTRUCTION = "(Please respond in Hindi if possible, or English with Hindi explanations)"

SPEAKERS = {"user": "Student", "model": "Mentor"}


class ChatTurn(BaseModel):
    role: str  # "user" | "model"
    text: str


class MentorAgent:
    def __init__(self, router: GeminiRouter, max_turns: int = 20):
        self.router = router
        self.max_turns = max_turns
        self._histories: Dict[str, List[ChatTurn]] = {}

    def build_prompt(self, message: str, history: List[ChatTurn]) -> str:
        lines = [MENTOR_INSTRUCTION, ""]
        if history:
            lines.append("Conversation so far:")
            lines += [f"{SPEAKERS[turn.role]}: {turn.text}" for turn in history[-self.max_turns:]]
            lines.append("")
        lines += [f"Student: {message}", "Mentor:"]
        return "\n".join(lines)

    async def send_message(
        self,
        message: str,
        conversation_id: Optional[str] = None,
        language: str = "en",
    ) -> str:
        """
        Ask the mentor. History is only recorded when the model answers, so
        a failed call (GenerationError propagates) leaves the conversation as it was.
        """
        if not message or not message.strip():
            raise ValueError("message must be a non-empty string")

        enhanced = f"{message}\n\n{HINDI_INSTRUCTION}" if language == "hi" else message

        history = self._histories.get(conversation_id, []) if conversation_id else []
        reply = await self.router.generate(self.build_prompt(enhanced, history), max_output_tokens=2048)

        if conversation_id:
            self._histories[conversation_id] = history + [
                ChatTurn(role="user", text=enhanced),
                ChatTurn(role="model", text=reply),
            ]
            logger.info("💬 Conversation %s now has %d turns", conversation_id, len(self._histories[conversation_id]))

        return reply

    def get_history(self, conversation_id: str) -> List[ChatTurn]:
        return list(self._histories.get(conversation_id, []))

    def clear_history(self, conversation_id: str):
        self._histories.pop(conversation_id, None)

    def clear_all_histories(self):
        self._histories.clear()

    def conversation_ids(self) -> List[str]:
        return list(self._histories)
