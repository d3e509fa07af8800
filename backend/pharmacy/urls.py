from django.urls import path
from .views import (
    DashboardStatsView,
    HealthView,
    MedicationSearchView,
    OCRView,
    OrderDetailView,
    OrderListCreateView,
    OrderStatusView,
)

urlpatterns = [
    path('health', HealthView.as_view(), name='health'),
    path('ocr', OCRView.as_view(), name='ocr'),
    path('orders', OrderListCreateView.as_view(), name='order-list'),
    path('orders/<str:order_id>', OrderDetailView.as_view(), name='order-detail'),
    path('orders/<str:order_id>/status', OrderStatusView.as_view(), name='order-status'),
    path('dashboard/stats', DashboardStatsView.as_view(), name='dashboard-stats'),
    path('medications/search', MedicationSearchView.as_view(), name='medication-search'),
]
