#!/usr/bin/env python
from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path


V1_HEADER = [
    "uuid",
    "persona",
    "cultural_background",
    "skills_and_expertise_list",
    "hobbies_and_interests_list",
    "career_goals_and_ambitions",
    "sex",
    "age",
    "marital_status",
    "education_level",
    "occupation",
    "region",
    "prefecture",
    "country",
]

SURNAMES = ["佐藤", "鈴木", "高橋", "田中", "伊藤"]
GIVEN_NAMES = ["花子", "太郎", "美咲", "健一", "陽菜"]
OCCUPATIONS = ["介護職員", "郵便配達員", "製造業オペレーター", "農業従事者", "小売店店長"]
PREFECTURES = [("関東地方", "東京都"), ("近畿地方", "大阪府"), ("九州地方", "福岡県")]


def _v1_row(index: int) -> list[str]:
    surname = SURNAMES[index % len(SURNAMES)]
    given = GIVEN_NAMES[(index // len(SURNAMES)) % len(GIVEN_NAMES)]
    region, prefecture = PREFECTURES[index % len(PREFECTURES)]
    age = 22 + (index * 7) % 55
    return [
        f"00000000-0000-4000-8000-{index:012d}",
        f"{surname} {given}は、{prefecture}で暮らす{age}歳。",
        f"{prefecture}の下町で育った。",
        "['接客', 'チームワーク']",
        "['料理', '散歩']",
        "地域に根ざした仕事を続けたい。",
        "女" if index % 2 else "男",
        str(age),
        "未婚",
        "大学卒",
        OCCUPATIONS[index % len(OCCUPATIONS)],
        region,
        prefecture,
        "日本",
    ]


def _default_record(index: int) -> dict[str, object]:
    return {
        "name": f"Persona {index}",
        "greeting": f"Hello, I am persona {index}.",
        "description": f"Synthetic persona number {index}.",
        "tags": ["sample", f"group-{index % 10}"],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample persona dataset")
    parser.add_argument("--output", required=True, help="output file (.csv, .json or .ndjson)")
    parser.add_argument("--rows", type=int, default=100, help="number of records")
    parser.add_argument(
        "--schema",
        choices=["default", "csv_persona_v1"],
        default="default",
        help="dataset layout to generate",
    )
    args = parser.parse_args()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    suffix = output.suffix.lower()

    if args.schema == "csv_persona_v1":
        with output.open("w", newline="", encoding="utf-8") as fp:
            writer = csv.writer(fp)
            writer.writerow(V1_HEADER)
            for index in range(args.rows):
                writer.writerow(_v1_row(index))
    elif suffix == ".json":
        records = [_default_record(index) for index in range(args.rows)]
        output.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
    elif suffix in {".ndjson", ".jsonl"}:
        with output.open("w", encoding="utf-8") as fp:
            for index in range(args.rows):
                fp.write(json.dumps(_default_record(index), ensure_ascii=False) + "\n")
    else:
        with output.open("w", newline="", encoding="utf-8") as fp:
            writer = csv.DictWriter(fp, fieldnames=["name", "greeting", "description", "tags"])
            writer.writeheader()
            for index in range(args.rows):
                record = _default_record(index)
                record["tags"] = ",".join(record["tags"])  # type: ignore[arg-type]
                writer.writerow(record)

    print(f"{args.schema} dataset with {args.rows} records written to {output}")


if __name__ == "__main__":
    main()
