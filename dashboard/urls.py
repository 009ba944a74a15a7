from django.urls import path
from . import views

app_name = 'dashboard'

urlpatterns = [
    path('dashboard/', views.index, name='home'),
    path('consultations/', views.consultations, name='consultations'),
    path('appointments/', views.appointments, name='appointments'),
    path('appointments/<str:pk>/', views.appointment_detail, name='appointment_detail'),
    path('appointments/<str:pk>/<slug:action>/', views.appointment_action, name='appointment_action'),
    path('auth/login/', views.login_view, name='login'),
    path('auth/logout/', views.logout_view, name='logout'),
    path('auth/me/', views.me, name='me'),
]
