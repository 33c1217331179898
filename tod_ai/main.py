# ==============================================================================
# FILE: tod_ai/main.py (interactive mentor CLI)
# ==============================================================================

import sys
import asyncio
import uuid

from tod_ai.agents.mentor_agent import MentorAgent
from tod_ai.agents.research_agent import recommend_papers
from tod_ai.config import get_logger
from tod_ai.tools.semantic_scholar_tool import PaperSearchError
from tod_ai.utils.diagnostics import render_diagnostic
from tod_ai.utils.errors import GenerationError
from tod_ai.utils.model_router import GeminiRouter, create_router

logger = get_logger(__name__)

HELP = """Commands:
   /models            list models your key can use
   /test              test the API connection
   /config            show the model currently in use
   /clear             forget cached models and chat history
   /research <topic>  recommend research papers
   exit               quit
Anything else is sent to the mentor."""


async def run_command(command: str, router: GeminiRouter, mentor: MentorAgent, conversation_id: str) -> str:
    """Handle one line of input and return what to print."""
    if command == "/models":
        models = await router.list_available_models()
        return "\n".join(models) if models else "No models available."

    if command == "/test":
        result = await router.test_connection()
        if result.success:
            return f"✅ Connected via {result.version}:{result.model}\n{result.message}"
        return result.diagnostic or "❌ Connection failed"

    if command == "/config":
        working = router.get_working_config()
        return f"Working model: {working.label}" if working else "No working model cached yet."

    if command == "/clear":
        router.clear_cache()
        mentor.clear_all_histories()
        return "✨ Cache and history cleared"

    if command.startswith("/research"):
        topic = command[len("/research"):].strip()
        if not topic:
            return "Usage: /research <topic>"
        try:
            rec = await recommend_papers(router, topic)
        except (PaperSearchError, ValueError) as e:
            return f"❌ {e}"
        lines = [f"📚 {rec.topic} ({rec.domain})", ""]
        for i, paper in enumerate(rec.papers, start=1):
            lines.append(f"{i}. {paper.title} ({paper.year})")
            lines.append(f"   {paper.summary}")
            lines.append(f"   Why: {paper.relevance}")
            if paper.paper_link:
                lines.append(f"   {paper.paper_link}")
        return "\n".join(lines)

    return await mentor.send_message(command, conversation_id=conversation_id)


async def main_async():
    """Main async entry point"""
    router = create_router()
    mentor = MentorAgent(router)
    conversation_id = f"cli-{uuid.uuid4().hex[:8]}"

    print("\n" + "=" * 70)
    print("🎓 Tod AI - Mentor Console")
    print("=" * 70)
    print(HELP + "\n")

    while True:
        try:
            user_input = input("📝 You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting...")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit"):
            print("Goodbye! 👋")
            break

        logger.info("🔍 Input: %s", user_input[:80])

        try:
            output = await run_command(user_input, router, mentor, conversation_id)
        except GenerationError as e:
            output = render_diagnostic(e)

        print(f"\n{output}\n")


def main():
    """Entry point"""
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        print("\n\n👋 Shutting down...")
    except Exception as e:
        logger.exception("❌ Fatal error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
