from edutube.models.job import Job
from edutube.models.video import Video

__all__ = ["Job", "Video"]
