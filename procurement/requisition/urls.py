"""
Requisition URL Configuration

URL patterns for requisition line-item API endpoints.
"""
from django.urls import path
from procurement.requisition import views

app_name = 'requisition'

urlpatterns = [
    # ============================================================================
    # Requisition Item CRUD Operations
    # ============================================================================
    path('items/', views.requisition_item_list, name='item-list'),
    path('items/<int:pk>/', views.requisition_item_detail, name='item-detail'),

    # ============================================================================
    # Requisition Item Workflow Actions
    # ============================================================================
    path('items/<int:pk>/approve/', views.requisition_item_approve, name='item-approve'),
    path('items/<int:pk>/partially-approve/', views.requisition_item_partially_approve,
         name='item-partially-approve'),
    path('items/<int:pk>/reject/', views.requisition_item_reject, name='item-reject'),
    path('items/<int:pk>/actual-costs/', views.requisition_item_actual_costs, name='item-actual-costs'),
]
