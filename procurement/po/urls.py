"""
Purchase Order URL Configuration

URL patterns for PO line-item API endpoints.
"""
from django.urls import path
from procurement.po import views

app_name = 'po'

urlpatterns = [
    # ============================================================================
    # PO Line Item CRUD Operations
    # ============================================================================
    path('items/', views.po_item_list, name='item-list'),
    path('items/<int:pk>/', views.po_item_detail, name='item-detail'),

    # ============================================================================
    # Receiving, Returns, Quality and Cancellation
    # ============================================================================
    path('items/<int:pk>/receive/', views.po_item_receive, name='item-receive'),
    path('items/<int:pk>/return/', views.po_item_return, name='item-return'),
    path('items/<int:pk>/quality-check/', views.po_item_quality_check, name='item-quality-check'),
    path('items/<int:pk>/cancel/', views.po_item_cancel, name='item-cancel'),
]
