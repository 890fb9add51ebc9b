from django.urls import path

from . import views

urlpatterns = [
    path('admin/offline-queue/', views.offline_queue, name='offline-queue'),
    path('admin/offline-queue/replay/', views.replay_offline_queue, name='offline-queue-replay'),
]
