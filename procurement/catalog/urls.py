"""
URL Configuration for Catalog API endpoints.
"""
from django.urls import path
from . import views

app_name = 'catalog'

urlpatterns = [
    path('products/', views.product_list, name='product-list'),
    path('products/<int:pk>/', views.product_detail, name='product-detail'),
    path('products/by-sku/<str:sku>/', views.product_by_sku, name='product-by-sku'),
]
