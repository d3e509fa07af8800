"""
DraftFields dataclass — 从 OCR 文本里猜出来的订单字段。

不落库，由 services.create_order() 立即消费。
每个字段都有默认值：没匹配到就用默认值，提取永远不会失败。
"""

from dataclasses import dataclass

UNKNOWN_PATIENT = "Unknown Patient"
UNKNOWN_MEDICATION = "Unknown Medication"


@dataclass(frozen=True)
class DraftFields:
    patient_name: str = UNKNOWN_PATIENT
    medication_name: str = UNKNOWN_MEDICATION
    dosage: str = ""
    quantity: int = 1         # 永远 ≥ 1
    prescribed_by: str = ""
