"""
Response serializers — ORM 对象 / OCRResult → JSON-able dict。

只负责「输出格式化」，不做任何解析或校验。
字段名沿用前端约定的 camelCase。
"""

import base64

from django.conf import settings


def _image_url(image_path):
    return f"{settings.MEDIA_URL}{image_path}" if image_path else None


def _iso(value):
    return value.isoformat() if value else None


def serialize_ocr_result(result, prescription, mime_type):
    """Serialize OCR upload response; client-side fallback returns the image instead of text."""
    response = {
        'success': True,
        'method': result.method.value,
        'confidence': result.confidence,
        'prescriptionId': str(prescription.id),
        'imageUrl': _image_url(prescription.image_path),
    }

    if result.needs_client_side:
        # 前端拿 data URL 做本地识别，再把文字 POST 回 /api/orders
        encoded = base64.b64encode(result.raw_image or b'').decode('ascii')
        response['imageData'] = f"data:{mime_type};base64,{encoded}"
        response['message'] = 'Using client-side OCR processing'
    else:
        response['text'] = result.text

    return response


def serialize_order_created(order):
    """Serialize order for 201 creation response."""
    return {
        'success': True,
        'orderId': order.order_id,
        'patientName': order.patient_name,
        'medicationName': order.medication_name,
        'dosage': order.dosage,
        'quantity': order.quantity,
        'prescribedBy': order.prescribed_by,
        'prescriptionText': order.prescription_text,
        'databaseId': str(order.id),
    }


def serialize_order_summary(order):
    prescription = order.prescription
    return {
        'id': order.order_id,
        'patientName': order.patient_name,
        'medication': order.medication_name,
        'dosage': order.dosage,
        'quantity': order.quantity,
        'status': order.status,
        'prescribedBy': order.prescribed_by,
        'createdAt': _iso(order.created_at),
        'ocrMethod': prescription.ocr_method if prescription else None,
        'confidence': prescription.confidence_score if prescription else None,
    }


def serialize_order_detail(order):
    """Summary fields plus the raw prescription text and image."""
    response = serialize_order_summary(order)
    response.update({
        'instructions': order.instructions,
        'prescriptionText': order.prescription_text,
        'updatedAt': _iso(order.updated_at),
        'imageUrl': _image_url(order.prescription.image_path) if order.prescription else None,
    })
    return response


def serialize_order_list(orders):
    return {
        'success': True,
        'orders': [serialize_order_summary(order) for order in orders],
    }


def serialize_medication(medication):
    return {
        'id': str(medication.id),
        'name': medication.name,
        'genericName': medication.generic_name,
        'dosage': medication.dosage,
        'form': medication.form,
        'manufacturer': medication.manufacturer,
    }
