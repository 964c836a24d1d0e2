"""
Main entry point for AI Gym Buddy.

Usage:
    gymbuddy serve              # FastAPI backend on HOST:PORT
    gymbuddy ui                 # Streamlit front end
    gymbuddy chat               # console session against the backend
    gymbuddy health             # check the backend is reachable

    # Programmatic
    from main import run_chat
    run_chat(load_config())
"""

import argparse
import os
import subprocess
import sys

import uvicorn

from app import GymBuddyApp
from client import BackendClient, friendly_error_message
from config import AppConfig, load_config
from conversation import Message
from logging_utils import configure_logging, set_verbose
from stage_machine import Stage

UI_SCRIPT = os.path.join(os.path.dirname(os.path.abspath(__file__)), "ui.py")


def serve(config: AppConfig, reload: bool = False) -> None:
    """Run the backend with uvicorn."""
    app_dir = os.path.dirname(os.path.abspath(__file__))
    uvicorn.run(
        "server:app",
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        app_dir=app_dir,
    )


def launch_ui(port: int | None = None) -> int:
    """Start the Streamlit front end in a child process."""
    command = [sys.executable, "-m", "streamlit", "run", UI_SCRIPT]
    if port:
        command += ["--server.port", str(port)]
    return subprocess.call(command)


def check_health(config: AppConfig) -> bool:
    client = BackendClient(config.api)
    try:
        healthy = client.check_health()
    finally:
        client.close()
    print(f"Backend at {config.api.base_url}: {'OK' if healthy else 'UNAVAILABLE'}")
    return healthy


def _choose(prompt: str, options: tuple[str, ...], multi: bool) -> str | list[str]:
    print(f"\n{prompt}")
    for number, option in enumerate(options, 1):
        print(f"  {number}. {option}")
    hint = "numbers separated by commas" if multi else "a number"
    raw = input(f"Enter {hint} ('b' to go back): ").strip()
    if raw.lower() == "b":
        return "b"

    picked = []
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit() and 1 <= int(part) <= len(options):
            picked.append(options[int(part) - 1])
        elif part:
            picked.append(part)
    if multi:
        return picked
    return picked[0] if picked else ""


def run_chat(config: AppConfig, gym_app: GymBuddyApp | None = None) -> int:
    """
    Console session: onboarding questions, summary, then chat.

    Chat commands: /export, /new, /reset, /quit
    """
    gym_app = gym_app or GymBuddyApp(config)
    if not gym_app.start():
        print(gym_app.view.error)
        return 1

    print(f"\n{gym_app.view.heading}")
    for line in gym_app.view.body:
        print(line)

    name = input("\nWhat's your name? (optional) ").strip()
    if name:
        gym_app.set_name(name)
    gym_app.begin_onboarding()

    try:
        while gym_app.stages.current() is Stage.ONBOARDING:
            _onboard(gym_app)
            if not _chat(gym_app):
                break
    finally:
        gym_app.close()
    return 0


def _onboard(gym_app: GymBuddyApp) -> None:
    while gym_app.stages.current() is Stage.ONBOARDING:
        view = gym_app.view
        progress = view.progress
        print(f"\n[{progress.current_number}/{progress.total}] {progress.percent}% complete")
        answer = _choose(view.question.prompt, view.question.options, view.question.is_multi_select)
        if answer == "b":
            gym_app.previous_question()
            continue
        result = gym_app.submit_answer(answer)
        if not result:
            print(f"  {result.error}")

    print(f"\n{gym_app.view.heading}")
    for line in gym_app.view.body:
        print(f"  {line}")
    gym_app.start_chat()

    for message in gym_app.view.messages:
        print(f"\nBuddy: {message.content}")


def _chat(gym_app: GymBuddyApp) -> bool:
    """Chat until the user quits (False) or resets their profile (True)."""
    while True:
        try:
            text = input("\nYou: ")
        except EOFError:
            return False

        command = text.strip().lower()
        if command == "/quit":
            return False
        if command == "/export":
            print(gym_app.export_history())
            continue
        if command == "/new":
            gym_app.new_conversation()
            print(f"\nBuddy: {gym_app.view.messages[-1].content}")
            continue
        if command == "/reset":
            if input("Reset your profile and start over? [y/N] ").strip().lower() == "y":
                return gym_app.edit_profile(confirmed=True)
            continue

        result = gym_app.send_message(text)
        if isinstance(result, Message):
            print(f"\nBuddy: {result.content}")
        elif result.system_message is not None:
            print(f"\n! {friendly_error_message(result.error)}")


def main():
    """Command-line interface."""
    parser = argparse.ArgumentParser(
        description="AI Gym Buddy: personal-trainer chat",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    PORT=3001 gymbuddy serve --reload
    gymbuddy ui
    gymbuddy chat --config inputs/gymbuddy_config.json
        """
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config JSON file"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve_parser = commands.add_parser("serve", help="Run the backend API")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    ui_parser = commands.add_parser("ui", help="Launch the Streamlit front end")
    ui_parser.add_argument("--port", type=int, default=None, help="Streamlit port")

    commands.add_parser("chat", help="Chat in the terminal")
    commands.add_parser("health", help="Check that the backend is reachable")

    args = parser.parse_args()

    configure_logging()
    config = load_config(args.config)
    set_verbose(args.verbose or config.debug)

    try:
        if args.command == "serve":
            serve(config, reload=args.reload)
            sys.exit(0)
        if args.command == "ui":
            sys.exit(launch_ui(args.port))
        if args.command == "health":
            sys.exit(0 if check_health(config) else 1)
        sys.exit(run_chat(config))

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
