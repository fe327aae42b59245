#!/usr/bin/env python3
"""
Validate the static PLU table (data/plu_codes.json).
Run from backend: python scripts/check_plu_table.py [path]
Exit 0 if every entry agrees with the shape rule (5 digits + leading 9 = organic)
and every 4-digit code has an organic counterpart; 1 otherwise.
"""
import json
import sys
from pathlib import Path
from typing import List, Optional

# Add backend to path when run as script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent.parent / ".env")


def find_problems(codes: dict) -> List[str]:
    """Return one message per problem found in the {code: {meaning, is_organic}} mapping."""
    from core.models.observation import is_valid_plu_shape
    from core.plu.plu_schema import is_organic_code

    problems = []
    for code, item in sorted(codes.items()):
        if not is_valid_plu_shape(code):
            problems.append(f"{code!r}: not a 4-5 digit code")
            continue
        if not str(item.get("meaning", "")).strip():
            problems.append(f"{code}: missing meaning")
        if bool(item.get("is_organic")) != is_organic_code(code):
            problems.append(f"{code}: is_organic={item.get('is_organic')} disagrees with code shape")
        if len(code) == 4 and f"9{code}" not in codes:
            problems.append(f"{code}: no organic counterpart 9{code}")
    return problems


def main(argv: Optional[List[str]] = None) -> int:
    from core.config import get_plu_table_path
    argv = sys.argv[1:] if argv is None else argv
    path = Path(argv[0]) if argv else get_plu_table_path()
    print(f"Checking PLU table {path} ...")
    if not path.exists():
        print("  FAIL - file not found")
        return 1
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    codes = data.get("codes") or {}
    organic = sum(1 for item in codes.values() if item.get("is_organic"))
    print(f"  version={data.get('table_version', '?')} codes={len(codes)} organic={organic}")
    problems = find_problems(codes)
    for p in problems:
        print(f"  FAIL - {p}")
    if problems:
        print(f"{len(problems)} problem(s) found.")
        return 1
    print("PLU table OK.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
