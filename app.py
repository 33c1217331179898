"""
HF Spaces Entry Point for Tod AI
This file is automatically run by HF Spaces
"""

from ui.app import create_interface

if __name__ == "__main__":
    demo = create_interface()

    demo.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False,
        show_error=True,
        quiet=False
    )
