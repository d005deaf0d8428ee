"""
Ragent - Command Line Entry Point
=================================

Runs one conversation turn from the terminal:
1. Loads configuration
2. Builds the agent (and the RAG pipeline when a vector store is configured)
3. Sends the question, streaming the answer by default

Run with:
    python -m ragent.main "What changed in the last release?"

Or after installing:
    ragent "What changed in the last release?"
    ragent --no-stream "Hello"
    ragent --clear
"""

import argparse
import asyncio
import sys

from ragent.errors import MaxToolDepthExceededError, ProviderError, RagentError
from ragent.utils.config import get_config, is_rag_configured
from ragent.utils.logger import Logger, set_level

main_logger = Logger("Main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ragent", description="Ask a tool-calling, retrieval-augmented agent")
    parser.add_argument("question", nargs="*", help="The question to ask")
    parser.add_argument("--no-stream", action="store_true", help="Wait for the full answer")
    parser.add_argument("--clear", action="store_true", help="Clear the stored conversation first")
    parser.add_argument("-k", type=int, default=None, help="Documents to retrieve (RAG only)")
    return parser


async def main(argv: list[str] | None = None) -> int:
    """
    Main async entry point.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    config = get_config()
    set_level(config.log_level)

    from ragent.agent import Agent
    from ragent.rag import RAG

    rag = RAG.from_config(config) if is_rag_configured() else None
    agent = rag.agent if rag is not None else Agent.from_config(config)

    if args.clear:
        agent.clear_history()
        if not args.question:
            return 0

    question = " ".join(args.question).strip()
    if not question:
        main_logger.error("No question given")
        return 2

    k = args.k or config.rag.top_k

    try:
        if args.no_stream:
            reply = await (rag.answer(question, k) if rag else agent.chat(question))
            print(reply.content)
        else:
            chunks = rag.stream_answer(question, k) if rag else agent.stream(question)
            async for chunk in chunks:
                print(chunk, end="", flush=True)
            print()
    except MaxToolDepthExceededError as e:
        main_logger.error("The model did not settle on an answer", e)
        return 1
    except ProviderError as e:
        main_logger.error("The model could not be reached", e)
        return 1
    finally:
        close = getattr(agent.provider, "aclose", None)
        if close is not None:
            await close()

    return 0


def run():
    """
    Synchronous entry point.

    This is called when running with the `ragent` command.
    """
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)
    except (RagentError, ValueError) as e:
        main_logger.error("Failed to run", e)
        sys.exit(1)


if __name__ == "__main__":
    run()
