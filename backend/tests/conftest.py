# tests/conftest.py
import io
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from pathlib import Path
from PIL import Image as PILImage
import shutil
import tempfile
import os

from app.main import app
from app.database import Base, get_db
from app.models import (
    Project, Image, Feedback, Comment, AnalysisStatus, AuthorRole,
    FeedbackCategory, FeedbackStatus, Severity
)
from app.config import settings

# Create test database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"


def make_png(width: int = 800, height: int = 600, color: str = "white") -> bytes:
    """Encode a blank PNG of the given size"""
    buffer = io.BytesIO()
    PILImage.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(scope="session")
def engine():
    """Create test database engine"""
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool  # Needed for SQLite in-memory database
    )
    return engine

@pytest.fixture(scope="session")
def tables(engine):
    """Create all tables in the test database"""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)

@pytest.fixture
def db_session(engine, tables):
    """Creates a new database session for a test"""
    connection = engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection)()

    yield session

    session.close()
    if transaction.is_active:
        transaction.rollback()
    connection.close()

@pytest.fixture(scope="session")
def temp_storage_dir():
    """Create temporary storage directory for test files"""
    temp_dir = tempfile.mkdtemp()
    for subdir in ["uploads", "exports"]:
        Path(temp_dir, subdir).mkdir(parents=True, exist_ok=True)
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)

@pytest.fixture(autouse=True)
def override_settings(temp_storage_dir):
    """Override settings for testing"""
    original_storage = settings.STORAGE_PATH
    original_uploads = settings.UPLOADS_PATH
    original_exports = settings.EXPORTS_PATH
    original_api_key = settings.GEMINI_API_KEY
    original_policy = settings.FEEDBACK_STATUS_POLICY

    settings.STORAGE_PATH = temp_storage_dir
    settings.UPLOADS_PATH = temp_storage_dir / "uploads"
    settings.EXPORTS_PATH = temp_storage_dir / "exports"
    settings.GEMINI_API_KEY = None
    settings.FEEDBACK_STATUS_POLICY = "permissive"

    yield

    settings.STORAGE_PATH = original_storage
    settings.UPLOADS_PATH = original_uploads
    settings.EXPORTS_PATH = original_exports
    settings.GEMINI_API_KEY = original_api_key
    settings.FEEDBACK_STATUS_POLICY = original_policy

@pytest.fixture
def client(db_session):
    """Test client using the test database"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

@pytest.fixture
def png_bytes():
    return make_png()

@pytest.fixture
def sample_project(db_session):
    """Create a sample project"""
    project = Project(
        name="Test Project",
        description="Test Description",
        image_ids=[]
    )
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project

@pytest.fixture
def sample_image(db_session, sample_project, temp_storage_dir, png_bytes):
    """An 800x600 PNG stored on disk and registered on the sample project"""
    image_path = temp_storage_dir / "uploads" / "sample.png"
    image_path.write_bytes(png_bytes)

    image = Image(
        project_id=sample_project.id,
        filename=image_path.name,
        original_name="homepage.png",
        storage_path=str(image_path.relative_to(temp_storage_dir)),
        width=800,
        height=600,
        byte_size=len(png_bytes),
        mime_type="image/png",
        analysis_status=AnalysisStatus.PENDING
    )
    db_session.add(image)
    db_session.commit()
    db_session.refresh(image)

    sample_project.push_image(image.id)
    db_session.commit()
    return image

@pytest.fixture
def sample_feedback(db_session, sample_image):
    """Create a sample feedback item"""
    feedback = Feedback(
        image_id=sample_image.id,
        category=FeedbackCategory.ACCESSIBILITY,
        severity=Severity.HIGH,
        title="Low contrast call to action",
        description="The primary button text fails contrast requirements",
        coordinates={"x": 100, "y": 120, "width": 200, "height": 60},
        target_roles=["designer", "developer"],
        recommendations=["Darken the button background"],
        tags=["contrast"],
        priority=4,
        status=FeedbackStatus.OPEN
    )
    db_session.add(feedback)
    db_session.commit()
    db_session.refresh(feedback)
    return feedback

@pytest.fixture
def sample_comment(db_session, sample_feedback):
    """Create a root comment on the sample feedback"""
    comment = Comment(
        feedback_id=sample_feedback.id,
        author_name="Alex",
        author_role=AuthorRole.DESIGNER,
        content="Agreed, I will update the palette",
        mentions=[],
        attachments=[],
        reactions=[],
        edit_history=[]
    )
    db_session.add(comment)
    db_session.commit()
    db_session.refresh(comment)
    return comment

@pytest.fixture(scope="session", autouse=True)
def cleanup_test_files():
    """Clean up test files after all tests are done"""
    yield
    test_files = [
        "test.db",
        "designsight.db",
        "test-designsight.db"
    ]
    for file in test_files:
        if os.path.exists(file):
            os.remove(file)
