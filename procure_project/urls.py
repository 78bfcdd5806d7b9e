"""
URL configuration for procure_project project.

Each procurement sub-application mounts its own URL module under /procurement/.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('procurement/', include('procurement.urls')),
]
