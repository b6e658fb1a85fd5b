from django.urls import path
from .views import UploadAndCreateJobView, JobDetailView, VideoListView, VideoDetailView

urlpatterns = [
    path("videos/upload/", UploadAndCreateJobView.as_view(), name="upload_create_job"),
    path("videos/", VideoListView.as_view(), name="video_list"),
    path("videos/<uuid:video_id>/", VideoDetailView.as_view(), name="video_detail"),
    path("jobs/<uuid:job_id>/", JobDetailView.as_view(), name="job_detail"),
]
