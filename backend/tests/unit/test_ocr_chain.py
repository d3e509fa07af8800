"""
测试 OCR provider 系统：
- OCRSpaceProvider / AzureVisionProvider 的响应解析（mock requests.post）
- fallback 链：第一个成功即返回，失败只记日志，全失败回退 client-side
- 输入校验：非 image/*、超过大小上限（且不发生网络调用）
- 工厂函数 get_ocr_providers
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from pharmacy.exceptions import InvalidInputError, PayloadTooLargeError, ProviderError
from pharmacy.ocr import OCRMethod, OCRResult, extract_text
from pharmacy.ocr.base import BaseOCRProvider
from pharmacy.ocr.factory import configured_provider_names, get_ocr_providers
from pharmacy.ocr.providers import AzureVisionProvider, OCRSpaceProvider

IMAGE = b'\x89PNG fake image bytes'

OCR_SPACE_OK = {
    'ParsedResults': [{'ParsedText': '  Patient: Jane Roe\r\nRx: Amoxicillin 500mg \r\n'}],
    'IsErroredOnProcessing': False,
}

AZURE_OK = {
    'regions': [
        {'lines': [
            {'words': [{'text': 'Patient:'}, {'text': 'Jane'}, {'text': 'Roe'}]},
            {'words': [{'text': 'Rx:'}, {'text': 'Amoxicillin'}]},
        ]},
        {'lines': [
            {'words': [{'text': 'Dr.'}, {'text': 'Smith'}]},
        ]},
    ],
}


def _response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f'{status_code} error')
    return response


class _FakeProvider(BaseOCRProvider):
    """测试用 provider，按构造参数返回结果或抛 ProviderError。"""

    def __init__(self, name, configured=True, text=None):
        self.name = name
        self.configured = configured
        self.text = text
        self.calls = 0

    def is_configured(self):
        return self.configured

    def extract(self, image_bytes, mime_type):
        self.calls += 1
        if self.text is None:
            raise ProviderError(f'{self.name} failed', provider=self.name)
        return OCRResult(text=self.text, confidence=0.5, method=OCRMethod.OCR_SPACE)


# ── 输入校验 ──────────────────────────────────────────────────────────────

class TestValidation:

    def test_non_image_mime_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            extract_text(IMAGE, 'application/pdf')
        assert exc_info.value.code == 'INVALID_FILE_TYPE'

    def test_empty_mime_rejected(self):
        with pytest.raises(InvalidInputError):
            extract_text(IMAGE, '')

    @patch('pharmacy.ocr.providers.requests.post')
    def test_too_large_rejected_before_network(self, mock_post, ocr_configured):
        ocr_configured.OCR_MAX_UPLOAD_BYTES = 5
        with pytest.raises(PayloadTooLargeError) as exc_info:
            extract_text(IMAGE, 'image/png')

        assert exc_info.value.http_status == 413
        mock_post.assert_not_called()


# ── OCRSpaceProvider ──────────────────────────────────────────────────────

class TestOCRSpaceProvider:

    def test_not_configured_without_key(self):
        assert OCRSpaceProvider().is_configured() is False

    @patch('pharmacy.ocr.providers.requests.post')
    def test_parsed_text_trimmed_with_fixed_confidence(self, mock_post, ocr_configured):
        mock_post.return_value = _response(OCR_SPACE_OK)

        result = OCRSpaceProvider().extract(IMAGE, 'image/png')

        assert result.text == 'Patient: Jane Roe\r\nRx: Amoxicillin 500mg'
        assert result.confidence == 0.85
        assert result.method is OCRMethod.OCR_SPACE

    @patch('pharmacy.ocr.providers.requests.post')
    def test_request_shape(self, mock_post, ocr_configured):
        mock_post.return_value = _response(OCR_SPACE_OK)

        OCRSpaceProvider().extract(IMAGE, 'image/jpeg')

        args, kwargs = mock_post.call_args
        assert args[0] == 'https://api.ocr.space/parse/image'
        assert kwargs['headers'] == {'apikey': 'test-ocr-space-key'}
        assert kwargs['data']['base64Image'].startswith('data:image/jpeg;base64,')
        assert kwargs['data']['OCREngine'] == '2'
        assert kwargs['data']['language'] == 'eng'
        assert kwargs['timeout'] == 30

    @pytest.mark.parametrize('payload', [
        {'ParsedResults': [{'ParsedText': '   '}]},
        {'ParsedResults': []},
        {'IsErroredOnProcessing': True, 'ErrorMessage': ['Unable to recognize the file type']},
        {},
    ])
    @patch('pharmacy.ocr.providers.requests.post')
    def test_empty_results_raise_provider_error(self, mock_post, payload, ocr_configured):
        mock_post.return_value = _response(payload)

        with pytest.raises(ProviderError) as exc_info:
            OCRSpaceProvider().extract(IMAGE, 'image/png')
        assert exc_info.value.code == 'PROVIDER_EMPTY_RESULT'
        assert exc_info.value.provider == 'ocr_space'

    @patch('pharmacy.ocr.providers.requests.post')
    def test_timeout_raises_provider_error(self, mock_post, ocr_configured):
        mock_post.side_effect = requests.Timeout('slow')

        with pytest.raises(ProviderError) as exc_info:
            OCRSpaceProvider().extract(IMAGE, 'image/png')
        assert exc_info.value.code == 'PROVIDER_TIMEOUT'

    @patch('pharmacy.ocr.providers.requests.post')
    def test_http_error_raises_provider_error(self, mock_post, ocr_configured):
        mock_post.return_value = _response({}, status_code=403)

        with pytest.raises(ProviderError):
            OCRSpaceProvider().extract(IMAGE, 'image/png')

    @pytest.mark.parametrize('payload', [
        ['unexpected'],
        'quota exceeded',
        {'ParsedResults': 'oops'},
        {'ParsedResults': ['not an object']},
        {'ParsedResults': [{'ParsedText': 42}]},
    ])
    @patch('pharmacy.ocr.providers.requests.post')
    def test_malformed_body_raises_provider_error(self, mock_post, payload, ocr_configured):
        mock_post.return_value = _response(payload)

        with pytest.raises(ProviderError) as exc_info:
            OCRSpaceProvider().extract(IMAGE, 'image/png')
        assert exc_info.value.code == 'PROVIDER_BAD_RESPONSE'
        assert exc_info.value.provider == 'ocr_space'


# ── AzureVisionProvider ───────────────────────────────────────────────────

class TestAzureVisionProvider:

    def test_needs_key_and_endpoint(self, settings):
        settings.AZURE_VISION_KEY = 'key-only'
        assert AzureVisionProvider().is_configured() is False

        settings.AZURE_VISION_ENDPOINT = 'https://example.com'
        assert AzureVisionProvider().is_configured() is True

    def test_join_regions_preserves_order(self):
        text = AzureVisionProvider.join_regions(AZURE_OK['regions'])
        assert text == 'Patient: Jane Roe\nRx: Amoxicillin\nDr. Smith'

    @patch('pharmacy.ocr.providers.requests.post')
    def test_extract(self, mock_post, ocr_configured):
        mock_post.return_value = _response(AZURE_OK)

        result = AzureVisionProvider().extract(IMAGE, 'image/png')

        assert result.text == 'Patient: Jane Roe\nRx: Amoxicillin\nDr. Smith'
        assert result.confidence == 0.9
        assert result.method is OCRMethod.AZURE_VISION

        args, kwargs = mock_post.call_args
        assert args[0] == 'https://example.cognitiveservices.azure.com/vision/v3.2/ocr'
        assert kwargs['params'] == {'language': 'en', 'detectOrientation': 'true'}
        assert kwargs['headers']['Ocp-Apim-Subscription-Key'] == 'test-azure-key'
        assert kwargs['headers']['Content-Type'] == 'application/octet-stream'
        assert kwargs['data'] == IMAGE

    @pytest.mark.parametrize('payload', [
        {'regions': []},
        {'regions': [{'lines': []}]},
        {'language': 'en'},
    ])
    @patch('pharmacy.ocr.providers.requests.post')
    def test_no_regions_raise_provider_error(self, mock_post, payload, ocr_configured):
        mock_post.return_value = _response(payload)

        with pytest.raises(ProviderError):
            AzureVisionProvider().extract(IMAGE, 'image/png')

    @pytest.mark.parametrize('payload', [
        ['unexpected'],
        {'regions': 'oops'},
        {'regions': ['not an object']},
        {'regions': [{'lines': ['not an object']}]},
        {'regions': [{'lines': [{'words': [{'text': 7}]}]}]},
    ])
    @patch('pharmacy.ocr.providers.requests.post')
    def test_malformed_body_raises_provider_error(self, mock_post, payload, ocr_configured):
        mock_post.return_value = _response(payload)

        with pytest.raises(ProviderError) as exc_info:
            AzureVisionProvider().extract(IMAGE, 'image/png')
        assert exc_info.value.code == 'PROVIDER_BAD_RESPONSE'


# ── Fallback 链 ───────────────────────────────────────────────────────────

class TestFallbackChain:

    def test_first_success_short_circuits(self):
        first = _FakeProvider('first', text='from first')
        second = _FakeProvider('second', text='from second')

        result = extract_text(IMAGE, 'image/png', providers=[first, second])

        assert result.text == 'from first'
        assert second.calls == 0

    def test_failure_falls_through_to_next(self):
        first = _FakeProvider('first', text=None)
        second = _FakeProvider('second', text='from second')

        result = extract_text(IMAGE, 'image/png', providers=[first, second])

        assert result.text == 'from second'
        assert first.calls == 1

    def test_unconfigured_provider_skipped(self):
        first = _FakeProvider('first', configured=False, text='never')
        second = _FakeProvider('second', text='from second')

        result = extract_text(IMAGE, 'image/png', providers=[first, second])

        assert result.text == 'from second'
        assert first.calls == 0

    def test_all_failed_returns_client_side(self):
        providers = [_FakeProvider('a', text=None), _FakeProvider('b', text=None)]

        result = extract_text(IMAGE, 'image/png', providers=providers)

        assert result.method is OCRMethod.CLIENT_SIDE
        assert result.text == ''
        assert result.raw_image == IMAGE
        assert result.needs_client_side

    def test_nothing_configured_returns_client_side(self):
        result = extract_text(IMAGE, 'image/png')

        assert result.method is OCRMethod.CLIENT_SIDE
        assert result.raw_image == IMAGE

    def test_failures_are_logged(self, caplog):
        providers = [_FakeProvider('flaky', text=None)]

        with caplog.at_level('WARNING', logger='pharmacy.ocr.chain'):
            extract_text(IMAGE, 'image/png', providers=providers)

        assert 'flaky' in caplog.text

    @patch('pharmacy.ocr.providers.requests.post')
    def test_ocr_space_timeout_then_azure(self, mock_post, ocr_configured):
        mock_post.side_effect = [requests.Timeout('slow'), _response(AZURE_OK)]

        result = extract_text(IMAGE, 'image/png')

        assert result.method is OCRMethod.AZURE_VISION
        assert mock_post.call_count == 2

    @patch('pharmacy.ocr.providers.requests.post')
    def test_both_real_providers_fail(self, mock_post, ocr_configured):
        mock_post.side_effect = requests.ConnectionError('down')

        result = extract_text(IMAGE, 'image/png')

        assert result.method is OCRMethod.CLIENT_SIDE
        assert mock_post.call_count == 2

    @pytest.mark.parametrize('payload', [['unexpected'], {'ParsedResults': 'oops'}, 'quota exceeded'])
    @patch('pharmacy.ocr.providers.requests.post')
    def test_malformed_bodies_fall_back_to_client_side(self, mock_post, payload, ocr_configured):
        mock_post.return_value = _response(payload)

        result = extract_text(IMAGE, 'image/png')

        assert result.method is OCRMethod.CLIENT_SIDE
        assert result.raw_image == IMAGE


# ── 工厂函数 ──────────────────────────────────────────────────────────────

class TestFactory:

    def test_default_order(self):
        names = [p.name for p in get_ocr_providers()]
        assert names == ['ocr_space', 'azure']

    def test_custom_order(self, settings):
        settings.OCR_PROVIDERS = ['azure']
        assert [p.name for p in get_ocr_providers()] == ['azure']

    def test_unknown_provider_raises(self, settings):
        settings.OCR_PROVIDERS = ['tesseract']
        with pytest.raises(ValueError):
            get_ocr_providers()

    def test_configured_provider_names(self, settings):
        assert configured_provider_names() == []
        settings.OCR_SPACE_API_KEY = 'k'
        assert configured_provider_names() == ['ocr_space']
