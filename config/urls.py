"""URL configuration for the reservation engine.

The `urlpatterns` list routes URLs to views. It includes the Django admin,
the versioned API of each app and the OpenAPI schema with its browsable docs.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    # Application URLs
    path('api/v1/availability/', include('apps.inventory.urls')),
    path('api/v1/', include('apps.bookings.urls')),
    path('api/v1/', include('apps.finances.urls')),
    # API schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]
