# backend/tests/api/test_projects.py
import pytest
from fastapi import status

def test_create_project(client):
    """Test project creation"""
    response = client.post(
        "/api/projects",
        json={"name": "New Project", "description": "Project Description"}
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Project created successfully"
    data = body["data"]
    assert data["name"] == "New Project"
    assert data["description"] == "Project Description"
    assert data["status"] == "active"
    assert data["image_ids"] == []
    assert "id" in data
    assert "created_at" in data

def test_get_project(client, sample_project, sample_image):
    """Test getting a single project with its images"""
    response = client.get(f"/api/projects/{sample_project.id}")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["name"] == sample_project.name
    assert data["description"] == sample_project.description
    assert data["image_count"] == 1
    assert data["images"][0]["id"] == sample_image.id
    assert data["images"][0]["metadata"] == {
        "width": 800,
        "height": 600,
        "byte_size": sample_image.byte_size,
        "mime_type": "image/png"
    }

def test_list_projects(client, sample_project):
    """Test listing active projects"""
    response = client.get("/api/projects")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["total"] >= 1
    assert body["page"] == 1
    assert body["count"] == len(body["data"])
    assert any(p["id"] == sample_project.id for p in body["data"])

def test_list_projects_pagination(client):
    for i in range(3):
        client.post("/api/projects", json={"name": f"Paged {i}"})

    response = client.get("/api/projects", params={"limit": 2, "page": 2})

    body = response.json()
    assert body["count"] == len(body["data"])
    assert body["pages"] == -(-body["total"] // 2)
    assert body["page"] == 2

def test_list_projects_newest_update_first(client):
    first = client.post("/api/projects", json={"name": "First"}).json()["data"]
    client.post("/api/projects", json={"name": "Second"})
    client.put(f"/api/projects/{first['id']}", json={"description": "Touched"})

    data = client.get("/api/projects").json()["data"]
    assert data[0]["id"] == first["id"]

def test_update_project(client, sample_project):
    """Test updating a project"""
    update_data = {
        "name": "Updated Project",
        "description": "Updated Description"
    }
    response = client.put(
        f"/api/projects/{sample_project.id}",
        json=update_data
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["name"] == update_data["name"]
    assert data["description"] == update_data["description"]

def test_archive_project(client, sample_project):
    """Deleting a project archives it"""
    response = client.delete(f"/api/projects/{sample_project.id}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "message": "Project archived successfully"}

    # Still addressable, no longer listed as active
    get_response = client.get(f"/api/projects/{sample_project.id}")
    assert get_response.status_code == status.HTTP_200_OK
    assert get_response.json()["data"]["status"] == "archived"

    active = client.get("/api/projects").json()["data"]
    assert all(p["id"] != sample_project.id for p in active)
    archived = client.get("/api/projects", params={"status": "archived"}).json()["data"]
    assert any(p["id"] == sample_project.id for p in archived)

def test_get_nonexistent_project(client):
    """Test getting a project that doesn't exist"""
    response = client.get("/api/projects/99999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    body = response.json()
    assert body["success"] is False
    assert body["kind"] == "not_found"
    assert body["error"] == "Project not found"

def test_invalid_project_data(client):
    """Test creating a project with invalid data"""
    response = client.post(
        "/api/projects",
        json={"description": "Missing name field"}
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["success"] is False
