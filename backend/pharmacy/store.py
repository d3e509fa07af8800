"""
Order Store — 所有数据库读写都在这里，一个查询一个函数。

services.py 只通过这些函数访问数据库；DatabaseError 在这里统一转成 StorageError，
order_id 唯一约束冲突转成 ConflictError（可重试）。
"""

import functools
import logging

from django.db import DatabaseError, IntegrityError, connection, transaction
from django.db.models import Count, Q
from django.utils import timezone

from .exceptions import ConflictError, StorageError
from .models import Medication, Order, Patient, Prescription

logger = logging.getLogger(__name__)

MEDICATION_SEARCH_LIMIT = 10


def _storage_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ConflictError, StorageError):
            raise
        except DatabaseError as exc:
            logger.exception("[Store] %s 失败", func.__name__)
            raise StorageError(
                message=f"Database operation failed: {exc}",
                detail={'operation': func.__name__},
            ) from exc
    return wrapper


@_storage_errors
def insert_prescription(extracted_text, confidence_score, ocr_method, image_path=None):
    return Prescription.objects.create(
        extracted_text=extracted_text,
        confidence_score=confidence_score,
        ocr_method=ocr_method,
        image_path=image_path,
    )


@_storage_errors
def get_prescription(prescription_id):
    return Prescription.objects.filter(id=prescription_id).first()


@_storage_errors
def prescription_has_order(prescription):
    return Order.objects.filter(prescription=prescription).exists()


@_storage_errors
def order_id_exists(order_id):
    return Order.objects.filter(order_id=order_id).exists()


@_storage_errors
def insert_order(**fields):
    try:
        with transaction.atomic():
            return Order.objects.create(**fields)
    except IntegrityError as exc:
        # order_id 或 prescription_id 唯一约束
        raise ConflictError(
            message='Order could not be saved because of a concurrent duplicate. Please retry.',
            code='ORDER_CONFLICT',
            detail={'order_id': fields.get('order_id'), 'retryable': True},
        ) from exc


@_storage_errors
def get_all_orders():
    return list(Order.objects.select_related('prescription').order_by('-created_at'))


@_storage_errors
def get_order_by_order_id(order_id):
    return Order.objects.select_related('prescription').filter(order_id=order_id).first()


@_storage_errors
def update_order_status(order, status):
    order.status = status
    order.save(update_fields=['status', 'updated_at'])
    return order


@_storage_errors
def dashboard_stats():
    today = timezone.localdate()
    counts = Order.objects.aggregate(
        total=Count('id'),
        pending=Count('id', filter=Q(status=Order.STATUS_PENDING)),
        completed=Count('id', filter=Q(status=Order.STATUS_DISPENSED)),
        today=Count('id', filter=Q(created_at__date=today)),
    )
    return {
        'totalOrders': counts['total'],
        'pendingOrders': counts['pending'],
        'completedOrders': counts['completed'],
        'todayOrders': counts['today'],
    }


@_storage_errors
def search_medications(term):
    return list(
        Medication.objects.filter(
            Q(name__icontains=term) | Q(generic_name__icontains=term)
        ).order_by('name')[:MEDICATION_SEARCH_LIMIT]
    )


@_storage_errors
def find_patient_by_name(name):
    return Patient.objects.filter(name__iexact=name).first()


@_storage_errors
def find_medication_by_name(name):
    return Medication.objects.filter(name__iexact=name).first()


def ping():
    """健康检查：数据库是否可用。不抛异常。"""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
        return True
    except DatabaseError:
        logger.exception("[Store] 数据库不可用")
        return False
