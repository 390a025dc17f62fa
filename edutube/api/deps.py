from fastapi import Request

from edutube.services.study import StudyService, get_study_service


def get_service(request: Request) -> StudyService:
    service = getattr(request.app.state, "study_service", None)
    return service if service is not None else get_study_service()
