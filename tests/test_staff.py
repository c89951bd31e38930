import pytest

from conftest import auth_headers, make_student
from unilibrary.core.errors import InvalidStateError
from unilibrary.models.models import LibrarianRole
from unilibrary.services.auth import AuthService
from unilibrary.services.librarians import LibrarianService


def register(db, username, role=LibrarianRole.LIBRARIAN):
    return AuthService(db).register_librarian(username, "secret123", username.title(), "Staff",
                                              f"{username}@library.local", role=role)


def test_admin_manages_librarians(client, db, admin_headers):
    register(db, "head", LibrarianRole.ADMIN)
    desk = register(db, "desk", LibrarianRole.ASSISTANT)

    r = client.get("/librarians", params={"role": "ASSISTANT"}, headers=admin_headers)
    assert r.status_code == 200
    assert [staff["username"] for staff in r.json()] == ["desk"]
    assert "password_hash" not in r.json()[0]

    r = client.put(f"/librarians/{desk.id}/role", json={"role": "LIBRARIAN"}, headers=admin_headers)
    assert r.json()["role"] == "LIBRARIAN"
    r = client.put(f"/librarians/{desk.id}", json={"email": "clerk@library.local"}, headers=admin_headers)
    assert r.json()["email"] == "clerk@library.local"
    r = client.put(f"/librarians/{desk.id}", json={"email": "head@library.local"}, headers=admin_headers)
    assert r.status_code == 400

    r = client.delete(f"/librarians/{desk.id}", headers=admin_headers)
    assert r.json()["active"] is False
    r = client.post("/auth/login", json={"username": "desk", "password": "secret123"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Account is disabled"

    client.put(f"/librarians/{desk.id}/activate", headers=admin_headers)
    r = client.post(f"/librarians/{desk.id}/reset-password", json={"password": "fresh-pass"}, headers=admin_headers)
    assert r.status_code == 200
    assert client.post("/auth/login", json={"username": "desk", "password": "secret123"}).status_code == 401
    assert client.post("/auth/login", json={"username": "desk", "password": "fresh-pass"}).status_code == 200


def test_librarian_management_is_admin_only(client, db, librarian_headers, student_headers):
    desk = register(db, "desk", LibrarianRole.ASSISTANT)
    assert client.get("/librarians", headers=librarian_headers).status_code == 403
    assert client.delete(f"/librarians/{desk.id}", headers=librarian_headers).status_code == 403
    assert client.get(f"/librarians/{desk.id}", headers=student_headers).status_code == 403
    assert client.get("/librarians").status_code == 401


def test_last_active_admin_is_kept(db):
    head = register(db, "head", LibrarianRole.ADMIN)
    service = LibrarianService(db)
    with pytest.raises(InvalidStateError, match="active admin"):
        service.change_role(head.id, LibrarianRole.LIBRARIAN)
    with pytest.raises(InvalidStateError, match="active admin"):
        service.set_active(head.id, False)

    register(db, "deputy", LibrarianRole.ADMIN)
    assert service.set_active(head.id, False).active is False


def test_department_crud(client, librarian_headers, student_headers):
    r = client.post("/departments", json={"name": "Physics", "description": "Faculty of Science"},
                    headers=librarian_headers)
    assert r.status_code == 200
    physics_id = r.json()["id"]
    r = client.post("/departments", json={"name": "physics"}, headers=librarian_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Department already exists"
    assert client.post("/departments", json={"name": "Art"}, headers=student_headers).status_code == 403

    r = client.put(f"/departments/{physics_id}", json={"name": "Applied Physics"}, headers=librarian_headers)
    assert r.json()["name"] == "Applied Physics"
    assert r.json()["description"] == "Faculty of Science"

    r = client.get("/departments", headers=student_headers)
    assert [d["name"] for d in r.json()] == ["Applied Physics"]

    assert client.delete(f"/departments/{physics_id}", headers=librarian_headers).status_code == 200
    assert client.get(f"/departments/{physics_id}", headers=student_headers).status_code == 404


def test_student_major_and_minor(client, db, student, librarian_headers, student_headers):
    physics = client.post("/departments", json={"name": "Physics"}, headers=librarian_headers).json()
    maths = client.post("/departments", json={"name": "Mathematics"}, headers=librarian_headers).json()
    url = f"/students/{student.id}/major-minor"

    assert client.get(url, headers=student_headers).status_code == 404
    r = client.put(url, json={"major_department_id": physics["id"], "minor_department_id": physics["id"]},
                   headers=librarian_headers)
    assert r.status_code == 400

    r = client.put(url, json={"major_department_id": physics["id"], "minor_department_id": maths["id"]},
                   headers=librarian_headers)
    assert r.status_code == 200
    assert r.json()["major_department"]["name"] == "Physics"
    assert r.json()["minor_department"]["name"] == "Mathematics"

    r = client.get("/students/me", headers=student_headers)
    assert (r.json()["major"], r.json()["minor_subject"]) == ("Physics", "Mathematics")
    assert client.get(url, headers=student_headers).status_code == 200

    other = make_student(db, student_id="20240002")
    r = client.get(f"/students/{other.id}/major-minor", headers=auth_headers(other.student_id, "STUDENT"))
    assert r.status_code == 404
    r = client.get(url, headers=auth_headers(other.student_id, "STUDENT"))
    assert r.status_code == 403

    r = client.delete(f"/departments/{maths['id']}", headers=librarian_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot delete department assigned to students"

    r = client.put(url, json={"major_department_id": maths["id"]}, headers=librarian_headers)
    assert r.json()["minor_department"] is None
    assert client.delete(f"/departments/{physics['id']}", headers=librarian_headers).status_code == 200
