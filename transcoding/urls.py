from django.urls import path
from .views import UploadAndCreateVideoView, VideoDetailView, PipelineStatsView

urlpatterns = [
    path("videos/upload/", UploadAndCreateVideoView.as_view(), name="upload_create_video"),
    path("videos/<uuid:video_id>/", VideoDetailView.as_view(), name="video_detail"),
    path("pipeline/stats/", PipelineStatsView.as_view(), name="pipeline_stats"),
]
