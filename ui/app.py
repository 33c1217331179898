# ui/app.py
"""
Gradio front end for Tod AI
- API key setup: validate a key before using it, list its models
- Mentor: chat with per-session history
- Research: paper recommendations for a topic
"""

import sys
import uuid

import gradio as gr

from tod_ai.agents.mentor_agent import MentorAgent
from tod_ai.agents.research_agent import ResearchRecommendation, recommend_papers
from tod_ai.config import get_logger
from tod_ai.tools.semantic_scholar_tool import PaperSearchError
from tod_ai.utils.diagnostics import render_diagnostic
from tod_ai.utils.errors import GenerationError
from tod_ai.utils.model_router import GeminiRouter, create_router

logger = get_logger(__name__)

router = None
mentor = None


def initialize():
    """Initialize on startup - ONLY ONCE"""
    global router, mentor

    if router is None:
        router = create_router()
        mentor = MentorAgent(router)
        logger.info("✅ Router and mentor initialized")

    return router, mentor


def use_api_key(api_key: str) -> GeminiRouter:
    """Swap in a router for a newly validated key."""
    global router, mentor

    router = create_router(api_key=api_key.strip())
    mentor = MentorAgent(router)
    return router


def as_code_block(text: str) -> str:
    return f"```\n{text}\n```"


async def test_key(api_key: str) -> str:
    current, _ = initialize()
    key = api_key.strip() if api_key and api_key.strip() else None

    result = await current.test_connection(key)
    if not result.success:
        return as_code_block(result.diagnostic or "Connection failed")

    if key:
        use_api_key(key)

    models = "\n".join(f"- {m}" for m in result.available_models)
    return (
        f"### ✅ API key works\n\n"
        f"**Model:** {result.version}:{result.model}\n\n"
        f"**Response:** {result.message}\n\n"
        f"**Available models:**\n{models}"
    )


async def list_models(api_key: str) -> str:
    current, _ = initialize()
    key = api_key.strip() if api_key and api_key.strip() else None

    models = await current.list_available_models(key)
    if not models:
        return "No models available for this key."
    return "\n".join(f"- {m}" for m in models)


def clear_models() -> str:
    current, _ = initialize()
    current.clear_cache()
    return "✨ Model cache cleared - the next request rediscovers models."


async def chat_interface(message: str, history: list, conversation_id: str, language: str):
    if not message.strip():
        return history, "", conversation_id

    _, current_mentor = initialize()
    conversation_id = conversation_id or f"web-{uuid.uuid4().hex[:8]}"
    history = history + [{"role": "user", "content": message}]

    try:
        reply = await current_mentor.send_message(
            message,
            conversation_id=conversation_id,
            language="hi" if language == "Hindi" else "en",
        )
    except GenerationError as e:
        reply = as_code_block(render_diagnostic(e))

    history.append({"role": "assistant", "content": reply})
    return history, "", conversation_id


def format_recommendation(rec: ResearchRecommendation) -> str:
    lines = [f"## 📚 {rec.topic}", f"**Domain:** {rec.domain}", ""]
    for i, paper in enumerate(rec.papers, start=1):
        authors = ", ".join(paper.authors[:4]) or "Unknown authors"
        title = f"[{paper.title}]({paper.paper_link})" if paper.paper_link else paper.title
        lines += [
            f"### {i}. {title}",
            f"*{authors} ({paper.year})*",
            "",
            f"**Summary:** {paper.summary}",
            "",
            f"**Why it matters:** {paper.relevance}",
            "",
        ]
    if not rec.papers:
        lines.append("No papers found for these keywords.")
    return "\n".join(lines)


async def research(topic: str) -> str:
    current, _ = initialize()
    try:
        rec = await recommend_papers(current, topic)
    except GenerationError as e:
        return as_code_block(render_diagnostic(e))
    except (PaperSearchError, ValueError) as e:
        return f"❌ **Error**\n\n{e}"
    return format_recommendation(rec)


def create_interface():
    """Create Gradio interface"""

    initialize()

    with gr.Blocks(
        title="Tod AI",
        theme=gr.themes.Soft(primary_hue="cyan", secondary_hue="purple"),
    ) as demo:

        gr.Markdown("""
        # 🎓 Tod AI

        **Your AI tutor, powered by Google Gemini**

        Start with **API Key Setup** if this is your first visit.
        """)

        with gr.Tab("🔑 API Key Setup"):
            gr.Markdown(
                "Get a free key at https://aistudio.google.com/app/apikey, "
                "paste it below and press **Test**. Leave it empty to test the server's key."
            )
            key_box = gr.Textbox(label="Gemini API Key", type="password", placeholder="AIza...")
            with gr.Row():
                test_btn = gr.Button("Test", variant="primary")
                models_btn = gr.Button("List Models")
                clear_btn = gr.Button("🗑️ Clear Model Cache")
            setup_output = gr.Markdown()

            test_btn.click(test_key, inputs=key_box, outputs=setup_output)
            models_btn.click(list_models, inputs=key_box, outputs=setup_output)
            clear_btn.click(clear_models, outputs=setup_output)

        with gr.Tab("💬 Mentor"):
            conversation_state = gr.State("")
            chatbot = gr.Chatbot(label="Conversation", height=500, type="messages")
            with gr.Row():
                msg = gr.Textbox(label="Question", placeholder="E.g., 'Explain binary search'", scale=4)
                language = gr.Radio(["English", "Hindi"], value="English", label="Language", scale=1)
            with gr.Row():
                send_btn = gr.Button("Send", variant="primary")
                reset_btn = gr.Button("🗑️ New Conversation")

            chat_inputs = [msg, chatbot, conversation_state, language]
            chat_outputs = [chatbot, msg, conversation_state]
            send_btn.click(chat_interface, inputs=chat_inputs, outputs=chat_outputs)
            msg.submit(chat_interface, inputs=chat_inputs, outputs=chat_outputs)
            reset_btn.click(lambda: ([], ""), outputs=[chatbot, conversation_state])

        with gr.Tab("📚 Research"):
            topic_box = gr.Textbox(
                label="Research idea",
                placeholder="E.g., 'Using machine learning to detect crop diseases from leaf images'",
            )
            research_btn = gr.Button("Find Papers", variant="primary")
            research_output = gr.Markdown()
            research_btn.click(research, inputs=topic_box, outputs=research_output)
            topic_box.submit(research, inputs=topic_box, outputs=research_output)

    return demo


def main():
    """Main entry point"""
    try:
        logger.info("🚀 Launching Gradio interface...")

        demo = create_interface()
        demo.launch(
            server_name="0.0.0.0",
            server_port=8000,
            share=False,
            show_error=True
        )
    except Exception as e:
        print(f"❌ Error: {str(e)}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
