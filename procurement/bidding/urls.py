"""
Bidding URL Configuration

URL patterns for bid status changes and bid item scoring endpoints.
"""
from django.urls import path
from procurement.bidding import views

app_name = 'bidding'

urlpatterns = [
    # ============================================================================
    # Bids and the status state machine
    # ============================================================================
    path('bids/', views.bid_list, name='bid-list'),
    path('bids/<int:pk>/', views.bid_detail, name='bid-detail'),
    path('bids/<int:pk>/change-status/', views.bid_change_status, name='bid-change-status'),
    path('bids/<int:pk>/next-status/', views.bid_next_status, name='bid-next-status'),

    # ============================================================================
    # Bid Item CRUD Operations
    # ============================================================================
    path('items/', views.bid_item_list, name='item-list'),
    path('items/<int:pk>/', views.bid_item_detail, name='item-detail'),

    # ============================================================================
    # Bid Item Scoring Actions
    # ============================================================================
    path('items/<int:pk>/deviations/', views.bid_item_deviations, name='item-deviations'),
    path('items/<int:pk>/alternative/', views.bid_item_alternative, name='item-alternative'),
    path('items/<int:pk>/evaluate/', views.bid_item_evaluate, name='item-evaluate'),
    path('items/<int:pk>/compliance/', views.bid_item_compliance, name='item-compliance'),
    path('items/<int:pk>/attachments/', views.bid_item_attachments, name='item-attachments'),
]
