"""Ingrain v1.0 — CLI entry point."""

import logging
import sys

from ingrain import analyze, generate_report

if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    path = sys.argv[1] if len(sys.argv) > 1 else "habit_data.json"
    result = analyze(path)
    print(generate_report(result))
