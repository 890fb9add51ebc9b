from django.urls import path

from . import views

urlpatterns = [
    # Public menu of the selected branch
    path('menu/', views.menu_view, name='menu'),

    # Menu authoring
    path('admin/menu/', views.MenuItemCreateView.as_view(), name='admin-menu-create'),
    path('admin/menu/<str:item_id>/', views.MenuItemDetailView.as_view(), name='admin-menu-detail'),

    # GST settings
    path('admin/gst/', views.GstSettingsView.as_view(), name='admin-gst'),
]
