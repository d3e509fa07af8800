from django.conf import settings
from django.conf.urls.static import static
from django.urls import include, path

urlpatterns = [
    path('api/', include('pharmacy.urls')),
]

# 上传的处方图片，仅开发环境由 Django 直接提供
urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
