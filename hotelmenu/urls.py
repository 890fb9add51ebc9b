import re

from django.conf import settings
from django.contrib import admin
from django.urls import include, path, re_path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from tenancy import views as tenancy_views

# Setup Swagger schema view
schema_view = get_schema_view(
    openapi.Info(
        title='Hotel Menu API',
        default_version='v1',
        description="Multi-hotel menu, GST pricing and sales API",
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/', include('tenancy.urls')),
    path('api/', include('catalog.urls')),
    path('api/', include('orders.urls')),
    path('api/', include('sync.urls')),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),

    # /{prefix}/{admin|user}/{hotel}[/{branch}]/
    re_path(
        rf'^{re.escape(settings.TENANT_ROUTE_PREFIX)}/(?P<page_kind>admin|user)/(?P<hotel>[^/]+)/(?:(?P<branch>[^/]+)/)?$',
        tenancy_views.tenant_route_view,
        name='tenant-route',
    ),
]
