from django.urls import path, include

urlpatterns = [
    path('catalog/', include('procurement.catalog.urls')),
    path('requisition/', include('procurement.requisition.urls')),
    path('po/', include('procurement.po.urls')),
    path('bidding/', include('procurement.bidding.urls')),
]
