import argparse
import asyncio
import sys
from uuid import uuid4

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from support_chat.api import create_app
from support_chat.app_config import AppConfig, load_json_config, parse_app_config, resolve_runtime_env
from support_chat.bootstrap import bootstrap_runtime
from support_chat.client.api_client import SupportChatClient
from support_chat.client.shell import ChatShell
from support_chat.logging_config import setup_logging


def serve(app_config: AppConfig) -> None:
    runtime = bootstrap_runtime(app_config)
    app = create_app(runtime, prefix=app_config.api_prefix)
    if runtime.log_descriptions:
        logger.info(f"Logging: {', '.join(runtime.log_descriptions)}")
    logger.info(f"Serving on http://{app_config.host}:{app_config.port}{app_config.api_prefix}")
    try:
        uvicorn.run(app, host=app_config.host, port=app_config.port, log_config=None)
    finally:
        runtime.close()


async def chat(app_config: AppConfig) -> None:
    setup_logging(
        level=app_config.log_level,
        consumers=app_config.log_consumers or [{"type": "file", "path": "support-chat-client.log"}],
    )
    env = resolve_runtime_env()
    user_id = app_config.user_id or f"user_{uuid4().hex[:12]}"

    print("support-chat (type 'exit' to quit, '/help' for commands)")
    print(f"Server: {app_config.api_base_url}")
    print(f"User: {user_id}")
    print()

    async with SupportChatClient(
        app_config.api_base_url,
        env.api_token,
        timeout=app_config.request_timeout_seconds,
    ) as client:
        shell = ChatShell(client, user_id)
        while True:
            try:
                user_input = await asyncio.to_thread(input, shell.user_prompt)
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()
            if trimmed in ("exit", "quit"):
                break
            if not trimmed:
                continue

            try:
                await shell.run(trimmed)
                print()
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="support-chat", description="Customer support chat service")
    parser.add_argument("command", choices=("serve", "chat"), help="run the HTTP service or the chat shell")
    parser.add_argument("--config", default=None, help="path to config.json (default: ./config.json)")
    args = parser.parse_args(argv)

    load_dotenv()
    app_config = parse_app_config(load_json_config(args.config))

    if args.command == "serve":
        serve(app_config)
    else:
        asyncio.run(chat(app_config))


if __name__ == "__main__":
    sys.exit(main())
