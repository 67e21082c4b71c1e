#!/usr/bin/env python3
"""Command-line entry point for grounded SEO content planning.

Usage:
  python pipeline.py ingest --corpus data/manual.txt
  python pipeline.py retrieve "second mortgage rates" --corpus data/manual.txt --top-k 3
  python pipeline.py analyze --serp data/serp.json
  python pipeline.py gaps --serp data/serp.json
  python pipeline.py plan "second mortgage" --corpus data/manual.txt --analysis data/serp_analysis.txt
  python pipeline.py plan "second mortgage" --corpus data/manual.txt --serp data/serp.json

Without CHROMA_HOST / CHROMA_API_KEY the corpus is held in memory for the
duration of one command.
"""

import argparse
import logging
import sys
from pathlib import Path

import orjson
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

from config import load_settings  # noqa: E402
from errors import ConfigurationError, ContentPlannerError  # noqa: E402
from schemas.serp import SerpEntry  # noqa: E402


def _read_text(path: str) -> str:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    return file_path.read_text(encoding="utf-8")


def load_serp_entries(path: str) -> list[SerpEntry]:
    """Load SERP entries from a JSON file holding a list (or {"entries": [...]})."""
    data = orjson.loads(Path(path).read_bytes())
    items = data.get("entries", []) if isinstance(data, dict) else data
    entries = []
    for item in items:
        try:
            entries.append(SerpEntry(**item))
        except Exception as e:
            logger.warning("Skipping invalid SERP entry in %s: %s", path, e)
    return entries


def _build_retriever(args):
    from rag.retriever import Retriever
    from vectorstore.embedder import Embedder

    settings = load_settings()
    retriever = Retriever(Embedder.from_settings(settings), settings=settings)
    stats = retriever.initialize(_read_text(args.corpus), source=Path(args.corpus).name)
    logger.info("Corpus ready: %d chunks in %s", stats["chunks_stored"], stats["store_type"])
    return retriever, stats


def _build_llm():
    from generators.llm_client import LLMClient

    return LLMClient.from_settings(load_settings())


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_ingest(args):
    """Chunk, embed and store the corpus."""
    _, stats = _build_retriever(args)
    print(f"Stored {stats['chunks_stored']} chunks in {stats['store_type']}")


def cmd_retrieve(args):
    """Run one retrieval query and show kept and skipped passages."""
    retriever, _ = _build_retriever(args)
    result = retriever.retrieve(args.query, top_k=args.top_k)

    print(f"\nQuery: \"{args.query}\"  (threshold {result.threshold})")
    print("-" * 50)
    for i, doc in enumerate(result.docs, 1):
        preview = doc.content[:200].replace("\n", " ")
        print(f"[{i}] Score: {doc.score:.3f} | {doc.chapter}\n    {preview}...")
    for doc in result.skipped:
        print(f"[skipped] Score: {doc.score:.3f} | {doc.chapter}")


def cmd_analyze(args):
    """Rule-based SERP analysis (no model calls)."""
    from skills.registry import SerpAnalyzerSkill

    print(SerpAnalyzerSkill().execute(load_serp_entries(args.serp)).formatted_output)


def cmd_gaps(args):
    """Identify SERP content gaps."""
    from skills.registry import build_default_registry

    registry = build_default_registry(_build_llm())
    result = registry.execute("content-gap", load_serp_entries(args.serp))
    print(result.formatted_output)


def cmd_plan(args):
    """Generate a grounded planning report as JSON."""
    from generators.report_generator import ReportGenerator
    from skills.registry import build_default_registry

    if not args.analysis and not args.serp:
        raise ConfigurationError("plan needs --analysis or --serp")

    llm = _build_llm()
    sections = [_read_text(args.analysis)] if args.analysis else []
    if args.serp:
        registry = build_default_registry(llm)
        entries = load_serp_entries(args.serp)
        if not args.analysis:
            sections.append(registry.execute("serp-analyzer", entries).formatted_output)
        sections.append(registry.execute("content-gap", entries).formatted_output)
    analysis_text = "\n\n".join(sections)

    retriever, _ = _build_retriever(args)
    retrieved = retriever.retrieve(args.keyword, top_k=args.top_k)
    grounding_text = retriever.format_retrieved_docs(retrieved.docs)

    run = ReportGenerator(llm).generate_run(args.keyword, analysis_text, grounding_text)
    if run.value.is_fallback:
        logger.warning("No candidate returned parseable JSON; report wraps raw output")
    logger.info("Report generated by %s after %d attempt(s)", run.model, len(run.attempts))
    print(run.value.model_dump_json(indent=2))


# ---------------------------------------------------------------------------
# MAIN
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(
        description="Grounded SEO content planner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    ingest_parser = subparsers.add_parser("ingest", help="Chunk, embed and store the corpus")
    ingest_parser.add_argument("--corpus", required=True, help="Path to the corpus text file")

    retrieve_parser = subparsers.add_parser("retrieve", help="Test a retrieval query")
    retrieve_parser.add_argument("query", help="Query text")
    retrieve_parser.add_argument("--corpus", required=True, help="Path to the corpus text file")
    retrieve_parser.add_argument("--top-k", type=int, default=3, help="Number of candidates")

    analyze_parser = subparsers.add_parser("analyze", help="Rule-based SERP analysis")
    analyze_parser.add_argument("--serp", required=True, help="Path to SERP entries JSON")

    gaps_parser = subparsers.add_parser("gaps", help="Identify SERP content gaps")
    gaps_parser.add_argument("--serp", required=True, help="Path to SERP entries JSON")

    plan_parser = subparsers.add_parser("plan", help="Generate a planning report")
    plan_parser.add_argument("keyword", help="Target keyword")
    plan_parser.add_argument("--corpus", required=True, help="Path to the corpus text file")
    plan_parser.add_argument("--analysis", default=None, help="Path to a SERP analysis text")
    plan_parser.add_argument("--serp", default=None, help="SERP entries JSON for rule-based and gap analysis")
    plan_parser.add_argument("--top-k", type=int, default=3, help="Number of retrieval candidates")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "ingest": cmd_ingest,
        "retrieve": cmd_retrieve,
        "analyze": cmd_analyze,
        "gaps": cmd_gaps,
        "plan": cmd_plan,
    }

    try:
        commands[args.command](args)
    except ContentPlannerError as e:
        logger.error("%s: %s", e.error_code, e.message)
        sys.exit(1)
    except Exception as e:
        logger.exception("Pipeline error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
