from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView

urlpatterns = [
    # Redirect root to the health check
    path("", RedirectView.as_view(url="/api/health/", permanent=False)),

    path("admin/", admin.site.urls),
    path("api/", include("planora.urls")),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
