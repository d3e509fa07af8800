"""
处方字段提取规则表。

每个字段是一条 FieldRule(predicate, extract, default)：
  - 在所有非空行上按原顺序找第一条 predicate 命中的行
  - 对这一行调用 extract；extract 返回空值时用 default
  - 没有任何行命中时用 default

字段之间互相独立，同一行可以同时贡献给多个字段（例如 "Amoxicillin 500mg twice daily"
既是 medication 也是 dosage）。这是启发式规则可以接受的重复，不要"修"。
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .types import UNKNOWN_MEDICATION, UNKNOWN_PATIENT, DraftFields

# ── 匹配正则 ────────────────────────────────────────────────────────────────
PATIENT_RE = re.compile(r"patient|name", re.IGNORECASE)
NOT_PATIENT_RE = re.compile(r"medication|drug|rx", re.IGNORECASE)
MEDICATION_RE = re.compile(r"mg|tablet|capsule|ml|rx|medication|drug", re.IGNORECASE)
DOSAGE_RE = re.compile(r"daily|times|once|twice|thrice|every|hours|morning|evening", re.IGNORECASE)
QUANTITY_RE = re.compile(r"quantity|qty|#", re.IGNORECASE)
PRESCRIBER_RE = re.compile(r"dr\.|doctor|physician|prescribed by", re.IGNORECASE)

# ── 标签剥离 ────────────────────────────────────────────────────────────────
PATIENT_LABEL_RE = re.compile(r"^(?:\s*(?:patient|name)\b\s*:?)+", re.IGNORECASE)
MEDICATION_LABEL_RE = re.compile(r"^(?:\s*(?:rx|medication(?:\s+name)?)\b\s*:?)+", re.IGNORECASE)
PRESCRIBER_LABEL_RE = re.compile(r"dr\.|doctor|physician|prescribed by:?", re.IGNORECASE)
DIGITS_RE = re.compile(r"\d+")

# orders.quantity 列的上限（PositiveIntegerField，PostgreSQL integer）
MAX_QUANTITY = 2147483647


@dataclass(frozen=True)
class FieldRule:
    field: str
    predicate: Callable[[str], bool]
    extract: Callable[[str], object]
    default: object


def _patient_predicate(line: str) -> bool:
    # "Medication Name: ..." 也含 name，要排除
    return bool(PATIENT_RE.search(line)) and not NOT_PATIENT_RE.search(line)


def _strip_patient_label(line: str) -> str:
    return PATIENT_LABEL_RE.sub("", line).strip(" \t:")


def _strip_medication_label(line: str) -> str:
    return MEDICATION_LABEL_RE.sub("", line).strip(" \t:")


def _strip_prescriber_label(line: str) -> str:
    return " ".join(PRESCRIBER_LABEL_RE.sub(" ", line).split()).strip(" :")


def _parse_quantity(line: str) -> Optional[int]:
    match = DIGITS_RE.search(line)
    if match is None:
        return None
    value = int(match.group())
    # 超长数字串（处方号、电话号码）当作没识别出来
    return value if 1 <= value <= MAX_QUANTITY else None


RULES: Sequence[FieldRule] = (
    FieldRule("patient_name", _patient_predicate, _strip_patient_label, UNKNOWN_PATIENT),
    FieldRule("medication_name", MEDICATION_RE.search, _strip_medication_label, UNKNOWN_MEDICATION),
    FieldRule("dosage", DOSAGE_RE.search, str.strip, ""),
    FieldRule("quantity", QUANTITY_RE.search, _parse_quantity, 1),
    FieldRule("prescribed_by", PRESCRIBER_RE.search, _strip_prescriber_label, ""),
)


def split_lines(text: str) -> list[str]:
    """非空、去首尾空白的行，保持原顺序。"""
    return [line.strip() for line in (text or "").split("\n") if line.strip()]


def apply_rule(rule: FieldRule, lines: Sequence[str]):
    for line in lines:
        if rule.predicate(line):
            value = rule.extract(line)
            return value if value else rule.default
    return rule.default


def extract_fields(text: str) -> DraftFields:
    """OCR 文本 → DraftFields。纯函数，不会抛异常。"""
    lines = split_lines(text)
    return DraftFields(**{rule.field: apply_rule(rule, lines) for rule in RULES})
