"""
API Views for the Product catalog.
"""
from rest_framework.decorators import api_view
from rest_framework.response import Response
from rest_framework import status
from django.shortcuts import get_object_or_404
from django.db.models import Q

from procure_project.pagination import auto_paginate
from procure_project.response_formatter import success_response, error_response

from .models import Product
from .serializers import ProductSerializer, ProductListSerializer


@api_view(['GET', 'POST'])
@auto_paginate
def product_list(request):
    """
    List products or create a new one.

    GET /procurement/catalog/products/
    - Query params:
        - is_active: Filter by active status (true/false)
        - stock_status: adequate, low, out_of_stock, excess
        - search: Search by SKU or name

    POST /procurement/catalog/products/
    - Request body: ProductSerializer fields
    """
    if request.method == 'GET':
        products = Product.objects.all()

        is_active = request.query_params.get('is_active')
        if is_active is not None:
            products = products.filter(is_active=is_active.lower() == 'true')

        search = request.query_params.get('search')
        if search:
            products = products.filter(
                Q(sku__icontains=search) |
                Q(name__icontains=search)
            )

        stock_status = request.query_params.get('stock_status')
        if stock_status:
            products = [product for product in products if product.stock_status == stock_status]

        serializer = ProductListSerializer(products, many=True)
        return Response(serializer.data)

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        return success_response(
            data=ProductSerializer(product).data,
            message="Product created successfully",
            status_code=status.HTTP_201_CREATED
        )
    return error_response(
        message="Invalid data",
        data=serializer.errors,
        status_code=status.HTTP_400_BAD_REQUEST
    )


@api_view(['GET', 'PUT', 'DELETE'])
def product_detail(request, pk):
    """
    Retrieve, update or delete a product.

    DELETE is refused while line items still reference the product.
    """
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        return success_response(
            data=ProductSerializer(product).data,
            message="Product retrieved successfully"
        )

    elif request.method == 'PUT':
        serializer = ProductSerializer(product, data=request.data, partial=True)
        if serializer.is_valid():
            updated = serializer.save()
            return success_response(
                data=ProductSerializer(updated).data,
                message="Product updated successfully"
            )
        return error_response(
            message="Invalid data",
            data=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    if (
        product.requisition_items.exists() or
        product.purchase_order_items.exists() or
        product.bid_items.exists() or
        product.rfq_items.exists()
    ):
        return error_response(
            message="Cannot delete a product referenced by line items",
            status_code=status.HTTP_400_BAD_REQUEST
        )
    product.delete()
    return success_response(
        message="Product deleted successfully",
        status_code=status.HTTP_204_NO_CONTENT
    )


@api_view(['GET'])
def product_by_sku(request, sku):
    """
    GET /procurement/catalog/products/by-sku/{sku}/
    """
    product = Product.get_by_sku(sku)
    if product is None:
        return error_response(
            message=f"Product with SKU '{sku}' not found",
            status_code=status.HTTP_404_NOT_FOUND
        )
    return success_response(
        data=ProductSerializer(product).data,
        message="Product retrieved successfully"
    )
