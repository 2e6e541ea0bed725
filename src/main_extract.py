# src/main_extract.py

from __future__ import annotations
import argparse
import sys
from pathlib import Path

from graph_extract.exceptions import GraphExtractError
from graph_extract.export import save_csv
from graph_extract.graph_store import GraphStore
from graph_extract.ingestion import load_file_to_text
from graph_extract.schemas import RunStatus
from graph_extract.service import GraphExtractionService


def build_parser() :
    parser = argparse.ArgumentParser(
        description="Extract a relationship graph from a text file with a local Ollama model."
    )
    parser.add_argument("input", nargs="?", type=Path, help="txt, md, html, pdf, csv, tsv or xlsx file")
    parser.add_argument("--model", help="Ollama model name")
    parser.add_argument("--base-url", help="Ollama server URL")
    parser.add_argument("--temperature", type=float)
    parser.add_argument("--chunk-size", type=int)
    parser.add_argument("--csv-out", type=Path, help="write the edge table as CSV")
    parser.add_argument("--graph-out", type=Path, help="write the graph as node-link JSON")
    parser.add_argument("--list-models", action="store_true", help="list models and exit")
    return parser


def main(argv=None) :
    """
    Extract a graph from one input file:
    - Load the file as plain text
    - Split it into segments and ask the model for relationships
    - Print the run log and a summary
    - Optionally export the table (CSV) and the graph (JSON)
    """
    args = build_parser().parse_args(argv)
    service = GraphExtractionService()
    try:
        return _run(args, service)
    finally:
        service.close()


def _run(args, service) :
    try:
        if args.list_models:
            for m in service.list_models(args.base_url):
                print(m["name"])
            return 0

        if args.input is None:
            print("An input file is required.", file=sys.stderr)
            return 2

        text = load_file_to_text(args.input)
        result = service.run(
            text,
            model=args.model,
            base_url=args.base_url,
            temperature=args.temperature,
            chunk_size=args.chunk_size,
        )
    except (GraphExtractError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    for line in result.logs:
        print(line)

    state = result.graph_state
    print(f"Run {result.status.value}")
    print(f"- Unique nodes : {len(state.nodes)}")
    print(f"- Edges        : {len(state.edges)}")
    if result.error:
        print(f"- Error        : {result.error}")

    if args.csv_out:
        path = save_csv(result.table_rows(), args.csv_out)
        print(f"- CSV written to {path}")
    if args.graph_out:
        GraphStore.from_state(state).save(args.graph_out)
        print(f"- Graph written to {args.graph_out}")

    return 0 if result.status == RunStatus.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
