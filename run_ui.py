"""
Direct Gradio launch (no subprocess)
- Shares one event loop with the async handlers
- Prints a readable error if startup fails
"""

import sys


def main():
    """Launch Gradio app directly"""
    try:
        print("🚀 Starting Tod AI UI...")
        print("📍 http://0.0.0.0:8000")
        print("⌨️  Press Ctrl+C to stop the server\n")

        from ui.app import create_interface

        demo = create_interface()
        demo.launch(
            server_name="0.0.0.0",
            server_port=8000,
            share=False,
            show_error=True
        )

    except KeyboardInterrupt:
        print("\n\n👋 Shutting down... Goodbye!")
    except Exception as e:
        print(f"❌ Fatal error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
