"""
Batchman REST API.

Include in your project's urlpatterns:

    path("api/batchman/", include("batchman.api.urls")),
"""
