import logging
import os
import random

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils import timezone
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services, store
from .exceptions import InvalidInputError, StorageError
from .ocr import extract_text, validate_image
from .ocr.factory import get_ocr_providers
from .serializers import (
    serialize_medication,
    serialize_ocr_result,
    serialize_order_created,
    serialize_order_detail,
    serialize_order_list,
)

logger = logging.getLogger(__name__)


def _upload_name(original_name):
    """prescription-<millis>-<random><ext>"""
    millis = int(timezone.now().timestamp() * 1000)
    ext = os.path.splitext(original_name or '')[1].lower()
    return f"prescription-{millis}-{random.randint(0, 10**9)}{ext}"


class HealthView(APIView):
    """GET /api/health - liveness, database connectivity, OCR provider config"""

    def get(self, request):
        providers = {p.name: p.is_configured() for p in get_ocr_providers()}
        body = {
            'success': True,
            'status': 'OK',
            'message': 'Pharmacy Assistant API is running',
            'timestamp': timezone.now().isoformat(),
            'apis': {
                'ocrSpace': providers.get('ocr_space', False),
                'azureVision': providers.get('azure', False),
            },
        }

        if not store.ping():
            body['database'] = 'Unavailable'
            return Response(body)

        body['database'] = 'Connected'
        try:
            body['stats'] = services.dashboard_stats()
        except StorageError as exc:
            logger.warning("[API] health: dashboard stats unavailable: %s", exc.message)
            body['message'] = 'API running, database stats unavailable'
        return Response(body)


class OCRView(APIView):
    """POST /api/ocr - upload a prescription image and extract its text"""

    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        upload = request.FILES.get('image')
        if upload is None:
            raise InvalidInputError(message='No image file provided', code='NO_IMAGE')

        mime_type = upload.content_type or ''
        # 大小 / 类型不对时在读文件和调用 OCR 之前就拒绝
        validate_image(upload.size, mime_type)

        image_bytes = upload.read()
        image_path = default_storage.save(_upload_name(upload.name), ContentFile(image_bytes))
        logger.info("[API] 处方图片已保存: %s", image_path)

        result = extract_text(image_bytes, mime_type)
        prescription = services.record_ocr_attempt(result, image_path=image_path)

        return Response(serialize_ocr_result(result, prescription, mime_type))


class OrderListCreateView(APIView):
    """GET /api/orders - list orders newest first; POST /api/orders - create from text"""

    parser_classes = [JSONParser]

    def get(self, request):
        return Response(serialize_order_list(services.list_orders()))

    def post(self, request):
        data = request.data if isinstance(request.data, dict) else {}
        order = services.create_order(
            data.get('prescriptionText'),
            prescription_id=data.get('prescriptionId'),
        )
        return Response(serialize_order_created(order), status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    """GET /api/orders/<order_id>"""

    def get(self, request, order_id):
        order = services.get_order(order_id)
        return Response({'success': True, 'order': serialize_order_detail(order)})


class OrderStatusView(APIView):
    """PUT /api/orders/<order_id>/status - {"status": "..."}"""

    parser_classes = [JSONParser]

    def put(self, request, order_id):
        data = request.data if isinstance(request.data, dict) else {}
        order = services.update_status(order_id, data.get('status'))
        return Response({
            'success': True,
            'message': 'Order status updated',
            'orderId': order.order_id,
            'status': order.status,
            'order': serialize_order_detail(order),
        })


class DashboardStatsView(APIView):
    """GET /api/dashboard/stats"""

    def get(self, request):
        return Response({'success': True, 'stats': services.dashboard_stats()})


class MedicationSearchView(APIView):
    """GET /api/medications/search?q=amox"""

    def get(self, request):
        medications = services.search_medications(request.query_params.get('q', ''))
        return Response({
            'success': True,
            'medications': [serialize_medication(m) for m in medications],
        })
