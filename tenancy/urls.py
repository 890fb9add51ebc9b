from django.urls import path

from . import views

urlpatterns = [
    path('tenant/', views.tenant_view, name='tenant'),
    path('tenant/switch/', views.switch_branch, name='tenant-switch'),
]
