from django.urls import path

from . import views

urlpatterns = [
    # Cart & orders
    path('cart/summary/', views.cart_summary, name='cart-summary'),
    path('orders/', views.place_order, name='order-create'),

    # Sales report
    path('admin/sales/', views.sales_view, name='admin-sales'),
]
