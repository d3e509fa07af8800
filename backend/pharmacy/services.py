"""
Order Service — OCR 结果落库、处方文本 → 订单、订单状态流转。

View 层只调用这里的函数；所有失败都以 BaseAppException 子类抛出，
exception_handler 统一兜底。
"""

import logging
import uuid

from django.conf import settings
from django.utils import timezone

from . import store
from .exceptions import (
    ConflictError,
    EmptyInputError,
    InvalidInputError,
    InvalidStatusError,
    InvalidTransitionError,
    NotFoundError,
)
from .extraction import extract_fields
from .extraction.types import UNKNOWN_MEDICATION, UNKNOWN_PATIENT
from .models import Order
from .ocr import OCRMethod

logger = logging.getLogger(__name__)

# OCR 全部失败时 Prescription 里存的占位文本，保证审计记录不丢
OCR_FAILED_TEXT = 'OCR processing failed'

ORDER_ID_PREFIX = 'ORD-'
MAX_ORDER_ID_SUFFIX = 100

VALID_STATUSES = [choice for choice, _ in Order.STATUS_CHOICES]

# pending → processing → ready → dispensed；未终结的状态都可以取消
ALLOWED_TRANSITIONS = {
    Order.STATUS_PENDING: {Order.STATUS_PROCESSING, Order.STATUS_CANCELLED},
    Order.STATUS_PROCESSING: {Order.STATUS_READY, Order.STATUS_CANCELLED},
    Order.STATUS_READY: {Order.STATUS_DISPENSED, Order.STATUS_CANCELLED},
    Order.STATUS_DISPENSED: set(),
    Order.STATUS_CANCELLED: set(),
}


def record_ocr_attempt(result, image_path=None):
    """
    把一次 OCR 尝试存成 Prescription。成功与否都存。

    CLIENT_SIDE 结果没有文字，存占位文本 + method=client-side。
    """
    if result.text:
        text, method = result.text, result.method.value
    else:
        text, method = OCR_FAILED_TEXT, OCRMethod.CLIENT_SIDE.value

    prescription = store.insert_prescription(
        extracted_text=text,
        confidence_score=result.confidence,
        ocr_method=method,
        image_path=image_path,
    )
    logger.info("[Order] Prescription 已保存 id=%s method=%s", prescription.id, method)
    return prescription


def generate_order_id(now=None):
    """
    ORD- + 毫秒时间戳后 6 位，例如 ORD-482913。

    已被占用时依次加后缀 -2, -3 ...；真正的并发撞号由数据库唯一约束兜底。
    """
    now = now or timezone.now()
    millis = int(now.timestamp() * 1000)
    base = f"{ORDER_ID_PREFIX}{str(millis)[-6:]}"

    if not store.order_id_exists(base):
        return base

    for suffix in range(2, MAX_ORDER_ID_SUFFIX + 1):
        candidate = f"{base}-{suffix}"
        if not store.order_id_exists(candidate):
            return candidate

    raise ConflictError(
        message='Could not allocate a unique order id. Please retry.',
        code='ORDER_ID_EXHAUSTED',
        detail={'base': base, 'retryable': True},
    )


def _resolve_prescription(prescription_id):
    if prescription_id in (None, ''):
        return None

    try:
        prescription_uuid = uuid.UUID(str(prescription_id))
    except ValueError:
        raise InvalidInputError(
            message='prescriptionId is not a valid identifier.',
            code='INVALID_PRESCRIPTION_ID',
            detail={'prescription_id': str(prescription_id)},
        )

    prescription = store.get_prescription(prescription_uuid)
    if prescription is None:
        raise NotFoundError(
            message='Prescription not found',
            code='PRESCRIPTION_NOT_FOUND',
            detail={'prescription_id': str(prescription_id)},
        )

    if store.prescription_has_order(prescription):
        raise ConflictError(
            message='This prescription already has an order.',
            code='PRESCRIPTION_ALREADY_ORDERED',
            detail={'prescription_id': str(prescription_id)},
        )

    return prescription


def create_order(prescription_text, prescription_id=None):
    """
    处方文本 → 字段提取 → Order(status=pending)。

    同样的文本调用两次会得到两个不同 order_id 的订单。

    Raises:
        EmptyInputError:  文本为空
        NotFoundError:    prescription_id 不存在
        ConflictError:    处方已被下单 / order_id 并发冲突（可重试）
        StorageError:     其他数据库失败
    """
    if not isinstance(prescription_text, str) or not prescription_text.strip():
        raise EmptyInputError(message='No prescription text provided')

    prescription = _resolve_prescription(prescription_id)
    fields = extract_fields(prescription_text)
    logger.info(
        "[Order] 提取结果 patient=%r medication=%r quantity=%d",
        fields.patient_name, fields.medication_name, fields.quantity,
    )

    # 默认值说明没识别出来，不去目录里查 "Unknown"
    patient = None
    if fields.patient_name != UNKNOWN_PATIENT:
        patient = store.find_patient_by_name(fields.patient_name)
    medication = None
    if fields.medication_name != UNKNOWN_MEDICATION:
        medication = store.find_medication_by_name(fields.medication_name.split()[0])

    order = store.insert_order(
        order_id=generate_order_id(),
        patient=patient,
        medication=medication,
        prescription=prescription,
        patient_name=fields.patient_name,
        medication_name=fields.medication_name,
        dosage=fields.dosage,
        quantity=fields.quantity,
        instructions=fields.dosage,
        prescribed_by=fields.prescribed_by,
        prescription_text=prescription_text,
        status=Order.STATUS_PENDING,
    )
    logger.info("[Order] 订单创建完成 order_id=%s", order.order_id)
    return order


def get_order(order_id):
    """Get order by its human-readable id. Raises NotFoundError if missing."""
    order = store.get_order_by_order_id(order_id)
    if order is None:
        raise NotFoundError(
            message='Order not found',
            code='ORDER_NOT_FOUND',
            detail={'order_id': order_id},
        )
    return order


def check_transition(current, new_status):
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            message=f"Cannot change order status from '{current}' to '{new_status}'.",
            detail={
                'current_status': current,
                'requested_status': new_status,
                'allowed': sorted(ALLOWED_TRANSITIONS[current]),
            },
        )


def update_status(order_id, new_status):
    """
    更新订单状态。

    PHARMACY_ENFORCE_STATUS_TRANSITIONS=True（默认）时只允许状态图上的边；
    False 时任何合法 status 都接受（last-write-wins）。
    """
    if new_status not in VALID_STATUSES:
        raise InvalidStatusError(
            message='Invalid status',
            detail={'status': new_status, 'valid_statuses': VALID_STATUSES},
        )

    order = get_order(order_id)

    if settings.PHARMACY_ENFORCE_STATUS_TRANSITIONS:
        check_transition(order.status, new_status)

    previous = order.status
    order = store.update_order_status(order, new_status)
    logger.info("[Order] %s 状态 %s → %s", order.order_id, previous, new_status)
    return order


def list_orders():
    return store.get_all_orders()


def dashboard_stats():
    return store.dashboard_stats()


def search_medications(term):
    if not term or not term.strip():
        raise InvalidInputError(message='Search query required', code='SEARCH_QUERY_REQUIRED')
    return store.search_medications(term.strip())
