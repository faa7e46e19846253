# backend/app/api/projects.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.image import Image
from ..models.project import Project, ProjectStatus
from ..schemas.image import Image as ImageSchema
from ..schemas.project import ProjectCreate, ProjectUpdate, Project as ProjectSchema, ProjectDetail
from ..utils.logging import api_logger
from .common import Pagination, envelope, get_or_404, paginate, pagination_params

router = APIRouter(prefix="/api/projects", tags=["projects"])


def _project_detail(project: Project, db: Session) -> ProjectDetail:
    images = []
    if project.image_ids:
        by_id = {
            image.id: image
            for image in db.query(Image).filter(Image.id.in_(project.image_ids)).all()
        }
        # Keep the project's own ordering; ids without a record are skipped
        images = [by_id[i] for i in project.image_ids if i in by_id]

    detail = ProjectDetail.model_validate(project)
    detail.images = [ImageSchema.model_validate(image) for image in images]
    detail.image_count = len(images)
    return detail


@router.get("")
async def list_projects(
        status: Optional[ProjectStatus] = Query(ProjectStatus.ACTIVE),
        pagination: Pagination = Depends(pagination_params),
        db: Session = Depends(get_db)
):
    """List projects, most recently updated first"""
    api_logger.info("Starting projects list operation", extra={
        "endpoint": "/api/projects",
        "method": "GET",
        "status": status.value if status else None
    })

    query = db.query(Project)
    if status:
        query = query.filter(Project.status == status)
    query = query.order_by(Project.updated_at.desc(), Project.id.desc())

    projects, page_info = paginate(query, pagination)
    api_logger.info(f"Found {page_info['total']} projects", extra={"returned": len(projects)})
    return envelope([ProjectSchema.model_validate(p) for p in projects], **page_info)


@router.get("/{project_id}")
async def get_project(project_id: int, db: Session = Depends(get_db)):
    api_logger.info("Fetching project", extra={"project_id": project_id})

    project = get_or_404(db, Project, project_id, "Project")
    detail = _project_detail(project, db)

    api_logger.info("Project retrieved successfully", extra={
        "project_id": project_id,
        "image_count": detail.image_count
    })
    return envelope(detail)


@router.post("", status_code=201)
async def create_project(project: ProjectCreate, db: Session = Depends(get_db)):
    api_logger.info("Creating new project", extra={"project_name": project.name})

    try:
        db_project = Project(**project.model_dump(), image_ids=[])
        db.add(db_project)
        db.commit()
        db.refresh(db_project)
    except Exception as e:
        api_logger.error("Failed to create project", extra={
            "project_name": project.name,
            "error": str(e)
        })
        db.rollback()
        raise

    api_logger.info("Project created successfully", extra={
        "project_id": db_project.id,
        "project_name": db_project.name
    })
    return envelope(ProjectSchema.model_validate(db_project), message="Project created successfully")


@router.put("/{project_id}")
async def update_project(project_id: int, project: ProjectUpdate, db: Session = Depends(get_db)):
    api_logger.info("Updating project", extra={
        "project_id": project_id,
        "update_fields": list(project.model_dump(exclude_unset=True).keys())
    })

    db_project = get_or_404(db, Project, project_id, "Project")
    try:
        for field, value in project.model_dump(exclude_unset=True).items():
            if field == "name" and value is None:
                continue
            setattr(db_project, field, value)

        db.commit()
        db.refresh(db_project)
    except Exception as e:
        api_logger.error("Failed to update project", extra={
            "project_id": project_id,
            "error": str(e)
        })
        db.rollback()
        raise

    api_logger.info("Project updated successfully", extra={"project_id": project_id})
    return envelope(ProjectSchema.model_validate(db_project), message="Project updated successfully")


@router.delete("/{project_id}")
async def archive_project(project_id: int, db: Session = Depends(get_db)):
    """Soft delete: projects are archived, never removed"""
    api_logger.info("Archiving project", extra={"project_id": project_id})

    project = get_or_404(db, Project, project_id, "Project")
    try:
        project.status = ProjectStatus.ARCHIVED
        db.commit()
    except Exception as e:
        db.rollback()
        api_logger.error(f"Failed to archive project: {str(e)}")
        raise

    api_logger.info(f"Successfully archived project {project_id}")
    return envelope(message="Project archived successfully")
