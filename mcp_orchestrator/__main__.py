#!/usr/bin/env python3
"""
Answer a single utterance through the orchestrator.

Usage:
    python -m mcp_orchestrator "Zeige die ersten 5 Einträge aus VBAK" --server mcp-abap-abap-adt-api
    python -m mcp_orchestrator --mode agent "Was steht in den Dokumenten über Fitzer?"
    python -m mcp_orchestrator --list-servers

Examples:
    # Tool selection plus LLM answer over two servers
    python -m mcp_orchestrator --server document-retrieval --server agentdb "Suche nach Fitzer"

    # Three-step document search chain
    python -m mcp_orchestrator --mode chain '"Fitzer"'
"""

import argparse
import asyncio
import json
import logging
import sys

from mcp_orchestrator.application.services.chat_orchestrator import (
    ChatOrchestrator,
    ChatRequest,
    create_chat_orchestrator,
)
from mcp_orchestrator.configuration.config import get_settings
from mcp_orchestrator.configuration.logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-orchestrator",
        description="Route one utterance through MCP tool servers and an LLM",
    )
    parser.add_argument("utterance", nargs="?", help="User message to answer")
    parser.add_argument("--config", help="Path to the conf.json file (default: MCP_CONFIG_PATH)")
    parser.add_argument(
        "--mode",
        choices=["chat", "chain", "agent"],
        default="chat",
        help="chat: tool selection + LLM answer; chain: plan/search/present; agent: iterative search",
    )
    parser.add_argument(
        "--server",
        action="append",
        dest="servers",
        default=None,
        help="Tool server to use in chat mode (repeatable; default: all enabled servers)",
    )
    parser.add_argument("--model", help="Configured model id (default: the default model)")
    parser.add_argument("--no-mcp", action="store_true", help="Answer without tool selection")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument(
        "--list-servers", action="store_true", help="Print configured servers and exit"
    )
    return parser


async def run(args: argparse.Namespace, orchestrator: ChatOrchestrator) -> int:
    if args.list_servers:
        servers = [s.to_dict() for s in orchestrator.registry.get_all_servers_with_status()]
        print(json.dumps(servers, indent=2, ensure_ascii=False))
        return 0

    if not args.utterance:
        print("error: an utterance is required", file=sys.stderr)
        return 2

    await orchestrator.start()
    try:
        if args.mode == "chain":
            chain_result = await orchestrator.run_chain(args.utterance)
            output = chain_result.to_dict() if args.json else chain_result.final_result
        elif args.mode == "agent":
            agent_result = await orchestrator.run_agent(args.utterance)
            output = agent_result.to_dict() if args.json else agent_result.final_answer
        else:
            servers = args.servers or [s.name for s in orchestrator.registry.get_available_servers()]
            reply = await orchestrator.handle_message(
                ChatRequest(
                    content=args.utterance,
                    use_mcp=not args.no_mcp,
                    mcp_servers=servers,
                    model_id=args.model,
                )
            )
            output = reply.to_dict() if args.json else reply.content
    finally:
        await orchestrator.shutdown()

    if isinstance(output, str):
        print(output)
    else:
        print(json.dumps(output, indent=2, ensure_ascii=False, default=str))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    orchestrator = create_chat_orchestrator(args.config, settings=settings)
    try:
        return asyncio.run(run(args, orchestrator))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
