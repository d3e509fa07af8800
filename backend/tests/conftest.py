"""
Shared fixtures for all tests.

factory-boy factories live here so both unit/ and integration/ can import them.
"""
import pytest
from django.test import Client

import factory
from pharmacy.models import Medication, Order, Patient, Prescription


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class PatientFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Patient

    name = factory.Sequence(lambda n: f'Patient {n}')
    email = factory.Sequence(lambda n: f'patient{n}@example.com')


class MedicationFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Medication

    name = factory.Sequence(lambda n: f'Testmed{n}')
    generic_name = ''
    dosage = '10mg'
    form = 'Tablet'


class PrescriptionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Prescription

    extracted_text = 'Patient: Jane Roe\nRx: Amoxicillin 500mg'
    confidence_score = 0.85
    ocr_method = 'OCR.space API'
    image_path = 'prescription-1-1.png'


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    order_id = factory.Sequence(lambda n: f'ORD-{900000 + n}')
    patient_name = 'Jane Roe'
    medication_name = 'Amoxicillin 500mg'
    dosage = 'Take twice daily'
    quantity = 20
    instructions = 'Take twice daily'
    prescribed_by = 'Smith'
    prescription_text = 'Patient: Jane Roe\nRx: Amoxicillin 500mg'
    status = 'pending'


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_settings(settings, tmp_path):
    """上传目录放到临时目录；OCR 凭证清空，避免真的调用外部 API。"""
    settings.MEDIA_ROOT = str(tmp_path / 'uploads')
    settings.OCR_SPACE_API_KEY = ''
    settings.AZURE_VISION_KEY = ''
    settings.AZURE_VISION_ENDPOINT = ''
    settings.OCR_PROVIDERS = ['ocr_space', 'azure']
    settings.PHARMACY_ENFORCE_STATUS_TRANSITIONS = True
    return settings


@pytest.fixture
def ocr_configured(settings):
    settings.OCR_SPACE_API_KEY = 'test-ocr-space-key'
    settings.AZURE_VISION_KEY = 'test-azure-key'
    settings.AZURE_VISION_ENDPOINT = 'https://example.cognitiveservices.azure.com/'
    return settings


@pytest.fixture
def api_client():
    """Django test client for integration tests."""
    return Client()


@pytest.fixture
def sample_prescription_text():
    return 'Patient: Jane Roe\nRx: Amoxicillin 500mg\nTake twice daily\nQty: 20\nDr. Smith'
