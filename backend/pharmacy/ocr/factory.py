"""
工厂函数：根据 settings.OCR_PROVIDERS 返回按优先级排好的 provider 实例列表。

新增 OCR 供应商只需：
  1. 在 providers.py 新建 XxxProvider(BaseOCRProvider) 类
  2. 在此处 _build_registry() 加一行
  不需要修改 chain.py 或任何业务代码。
"""

from django.conf import settings

from .base import BaseOCRProvider


def _build_registry() -> dict[str, type[BaseOCRProvider]]:
    # 延迟导入，避免在 Django 启动前读取 settings
    from .providers import AzureVisionProvider, OCRSpaceProvider

    return {
        "ocr_space": OCRSpaceProvider,
        "azure":     AzureVisionProvider,
    }


def get_ocr_providers() -> list[BaseOCRProvider]:
    """
    从 settings.OCR_PROVIDERS 读取顺序，返回 provider 实例列表。

    settings.OCR_PROVIDERS 由环境变量 OCR_PROVIDERS 控制（默认 "ocr_space,azure"）。
    未配置凭证的 provider 也会返回，由 chain 跳过。

    Raises:
        ValueError: OCR_PROVIDERS 里有未知的名字
    """
    registry = _build_registry()
    providers = []

    for name in settings.OCR_PROVIDERS:
        provider_cls = registry.get(name)
        if provider_cls is None:
            raise ValueError(
                f"Unknown OCR provider: {name!r}. "
                f"Known providers: {list(registry.keys())}"
            )
        providers.append(provider_cls())

    return providers


def configured_provider_names() -> list[str]:
    """健康检查用：当前真正会被调用的 provider。"""
    return [p.name for p in get_ocr_providers() if p.is_configured()]
