# src/flow_mentor/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.errors import StoreUnavailable
from ..core.orchestrator import TurnOutcome
from ..core.state import AppState
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _watch_tasks(state: AppState):
    """Report task changes that arrive from other clients (or our own writes)."""
    last = {"count": len(state.tasks.snapshot()), "done": state.tasks.stats().completed}

    def _on_tasks(tasks: tuple[Task, ...]) -> None:
        done = sum(1 for t in tasks if t.completed)
        if len(tasks) == last["count"] and done == last["done"]:
            return
        last["count"], last["done"] = len(tasks), done
        _print_ts(f"[tasks] {len(tasks)} task(s), {done} completed.")

    return state.tasks.live.add_listener(_on_tasks)


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (user=%s).", state.user_id)
    _print_ts("[CONSOLE] Type a message for the assistant. Use /help for commands. Use /exit to quit.\n")

    app_name = str(getattr(getattr(state, "settings", None), "app_name", "flow-mentor"))

    def emit(text: str) -> None:
        _print_ts(text)

    stop_watch = _watch_tasks(state)
    stop_state = state.orchestrator.add_state_listener(
        lambda s: logger.debug("assistant turn state: %s", s.value)
    )

    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, ">>> You: ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                cmd_response = await command_registry.handle(state, user_input, emit=emit)
            except StoreUnavailable as e:
                cmd_response = f"Store unavailable: {e}"
            except Exception:
                logger.exception("Command handler crashed.")
                cmd_response = "Internal error while handling a command."

            if cmd_response is not None:
                _print_ts(cmd_response)
                continue

            _print_ts(f"<<< {app_name} is thinking...")
            result = await state.orchestrator.submit(user_input)

            if result.outcome is TurnOutcome.ABORTED:
                _print_ts("[chat] Message could not be saved. Check the store connection.")
            elif result.outcome is TurnOutcome.DANGLING:
                _print_ts("[chat] The reply could not be saved.")
            elif result.reply_text is not None:
                _print_ts(f"<<< {app_name}: {result.reply_text}\n")
    finally:
        stop_watch()
        stop_state()

    logger.info("Console connector finished.")
