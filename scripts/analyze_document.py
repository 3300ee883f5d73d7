import os
import sys
import csv
import json
from dotenv import load_dotenv

sys.path.append(os.path.abspath("."))
from redline.analyzer import Analyzer
from redline.logger import setup_logging
from redline.prompts import VARIANTS
from redline.retry import LLMUnavailableError


def main(paths, variant="legal"):
    load_dotenv()
    setup_logging()
    analyzer = Analyzer()

    os.makedirs("outputs", exist_ok=True)
    index_csv = os.path.join("outputs", "index.csv")
    if not os.path.exists(index_csv):
        with open(index_csv, "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(["id", "filename", "variant", "comments", "fallback"])

    for p in paths:
        if not os.path.exists(p):
            print(f"File not found: {p}")
            continue

        with open(p, "r", encoding="utf-8") as f:
            text = f.read()
        try:
            out = analyzer.analyze(text, variant)
        except LLMUnavailableError as e:
            print(f"Skipped {p}: {e}")
            continue

        base = os.path.splitext(os.path.basename(p))[0]
        outj = os.path.join("outputs", f"{base}.json")
        with open(outj, "w", encoding="utf-8") as f:
            json.dump({
                "id": out.result.id,
                "filename": os.path.basename(p),
                "variant": variant,
                **out.model_dump(mode="json"),
            }, f, ensure_ascii=False, indent=2)

        with open(index_csv, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow([out.result.id, os.path.basename(p), variant, len(out.located), out.result.is_fallback])

        print(f"Done: {outj} | Comments: {len(out.located)} | Fallback: {out.result.is_fallback}")


if __name__ == "__main__":
    args = sys.argv[1:]
    variant = "legal"
    if len(args) >= 2 and args[0] == "--variant":
        variant, args = args[1], args[2:]
    if not args or variant not in VARIANTS or variant == "bot_card_quant":
        print("Usage: python scripts/analyze_document.py [--variant legal|prd_en|prd_cn|bot_card] <file1.txt> [file2.txt ...]")
        sys.exit(1)
    main(args, variant)
