"""URL routes for files app."""

from django.urls import path

from server.apps.files import views

app_name = 'files'

urlpatterns = [
    path('', views.FileCollectionView.as_view(), name='file-list'),
    # Upload path of earlier API clients
    path(
        'upload',
        views.FileCollectionView.as_view(http_method_names=['post']),
        name='file-upload',
    ),
    path(
        '<int:file_id>/',
        views.FileDetailView.as_view(),
        name='file-detail',
    ),
    path(
        'blobs/<str:token>/',
        views.blob_download,
        name='blob-download',
    ),
]
