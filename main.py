from __future__ import annotations

import logging
import mimetypes
import sys
from pathlib import Path
from typing import Optional

from azure.core.exceptions import AzureError

from config import ENABLE_DEBUG, env
from orchestrator.agent_session import AgentSession
from utils.errors import AgentError

# ──────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────

_logger = logging.getLogger(__name__)
if ENABLE_DEBUG and not logging.getLogger().handlers:
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s | %(message)s")

_IMAGE_COMMAND = "/image "


# ──────────────────────────────────────────────────────────────
# Simple CLI for manual testing
# ──────────────────────────────────────────────────────────────


def _ask(session: AgentSession, agent_id: str, prompt: str, image: Optional[Path]) -> str:
    if image is None:
        return session.invoke_with_text(agent_id, prompt)

    content_type = mimetypes.guess_type(image.name)[0] or "application/octet-stream"
    with image.open("rb") as fh:
        return session.invoke_with_image(agent_id, prompt, fh, image.name, content_type)


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    agent_id = args[0] if args else env("AGENT_ID", "")
    if not agent_id:
        print("usage: python main.py <agent_id>  (or set AGENT_ID)", file=sys.stderr)
        sys.exit(2)

    pending_image: Optional[Path] = None
    try:
        with AgentSession() as session:
            print(f"🤖  Agent {agent_id} ready (/image <path> attaches a file, Ctrl-C to quit)\n")
            while True:
                prompt = input("You : ").strip()
                if not prompt:
                    continue
                if prompt.startswith(_IMAGE_COMMAND):
                    pending_image = Path(prompt[len(_IMAGE_COMMAND):].strip()).expanduser()
                    print(f"📎  {pending_image.name} will be attached to the next prompt\n")
                    continue

                try:
                    reply = _ask(session, agent_id, prompt, pending_image)
                except (AgentError, AzureError, OSError) as exc:
                    print(f"Error: {exc}\n", file=sys.stderr)
                    continue
                finally:
                    pending_image = None
                print(f"Bot : {reply}")
    except AgentError as exc:
        print(f"Could not start session: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n✋  Session ended.")


if __name__ == "__main__":
    main()
