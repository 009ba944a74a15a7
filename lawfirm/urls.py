from django.contrib import admin
from django.urls import include, path

admin.site.site_header = "Law firm admin"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('dashboard.urls')),
    path('', include('website.urls')),
]
