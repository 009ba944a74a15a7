from django.urls import path
from . import views

urlpatterns = [
    path('health/', views.health, name='health'),
    path('api/consultas/', views.consultation_create, name='consultation_create'),
]
