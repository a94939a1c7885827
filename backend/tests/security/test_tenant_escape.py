"""Security tests for tenant isolation

A record of another organization must be indistinguishable from a
missing one, whatever the caller's role.
"""

import pytest

from docflow.models import Document, ProjectRequiredDocument

pytestmark = pytest.mark.security


@pytest.fixture
def outsider(make_user, other_org):
    return make_user("SUPER_ADMIN", email="admin@globex.test", org_id=other_org.id)


@pytest.fixture
def acme_document(make_workflow, create_document, finance_staff, finance_hod, finance_dept):
    make_workflow(category="Financial", department=finance_dept)
    document, _ = create_document(
        finance_staff, title="Acme payroll", department_id=finance_dept.id,
        ocr_data={"keywords": ["payroll"], "extracted_text": "Acme payroll ledger", "confidence": 90},
    )
    return document


class TestTenantEscape:

    def test_get_document(self, client, auth_headers, acme_document, outsider):
        response = client.get(f"/api/v1/documents/{acme_document.id}", headers=auth_headers(outsider))

        assert response.status_code == 404

    @pytest.mark.parametrize("action", ["approve", "reject"])
    def test_act_on_document(self, client, auth_headers, acme_document, outsider, db_session, action):
        response = client.post(f"/api/v1/documents/{acme_document.id}/{action}", headers=auth_headers(outsider))

        assert response.status_code == 404
        db_session.expire_all()
        assert db_session.get(Document, acme_document.id).status == "pending_review"

    def test_replace_document(self, client, auth_headers, acme_document, outsider, storage):
        response = client.post(
            f"/api/v1/documents/{acme_document.id}/replace",
            headers=auth_headers(outsider),
            files={"file": ("x.pdf", b"%PDF evil", "application/pdf")},
        )

        assert response.status_code == 404
        assert storage.objects == {}

    def test_similar_documents(self, client, auth_headers, acme_document, outsider):
        response = client.get(f"/api/v1/documents/{acme_document.id}/similar", headers=auth_headers(outsider))

        assert response.status_code == 404

    def test_search_never_crosses_orgs(self, client, auth_headers, acme_document, outsider):
        for path, params in [
            ("/api/v1/documents/search", {"q": "payroll"}),
            ("/api/v1/documents/search/full-text", {"q": "payroll"}),
            ("/api/v1/documents/search/metadata", {}),
        ]:
            response = client.get(path, headers=auth_headers(outsider), params=params)
            assert response.json()["documents"] == []

        suggestions = client.get(
            "/api/v1/documents/search/suggestions", headers=auth_headers(outsider), params={"q": "pay"}
        ).json()
        assert suggestions["titles"] == []
        assert suggestions["keywords"] == []

    def test_pending_queue(self, client, auth_headers, acme_document, outsider):
        response = client.get("/api/v1/documents/approvals/pending", headers=auth_headers(outsider))

        assert response.json()["total"] == 0

    def test_project_status(self, client, auth_headers, make_project, outsider):
        project = make_project()

        response = client.get(f"/api/v1/projects/{project.id}/documents/status", headers=auth_headers(outsider))

        assert response.status_code == 404

    def test_upload_into_foreign_project(self, client, auth_headers, make_project, outsider, storage, db_session):
        project = make_project()

        response = client.post(
            "/api/v1/documents",
            headers=auth_headers(outsider),
            files={"file": ("p.pdf", b"%PDF proposal", "application/pdf")},
            data={
                "title": "Proposal",
                "category": "Project",
                "document_type": "Project Proposal",
                "project_id": str(project.id),
            },
        )

        assert response.status_code == 404
        assert storage.objects == {}
        entry = db_session.query(ProjectRequiredDocument).filter(
            ProjectRequiredDocument.project_id == project.id,
            ProjectRequiredDocument.document_type == "Project Proposal",
        ).one()
        assert entry.is_submitted is False

    def test_upload_into_foreign_department(self, client, auth_headers, finance_dept, outsider):
        response = client.post(
            "/api/v1/documents",
            headers=auth_headers(outsider),
            files={"file": ("i.pdf", b"%PDF invoice", "application/pdf")},
            data={
                "title": "Invoice",
                "category": "Financial",
                "document_type": "Invoice",
                "department_id": str(finance_dept.id),
            },
        )

        assert response.status_code == 422

    def test_outsider_documents_stay_outside(self, client, auth_headers, create_document, outsider, super_admin):
        foreign, _ = create_document(outsider, title="Globex plan")

        response = client.get("/api/v1/documents/search", headers=auth_headers(super_admin))

        assert foreign.org_id != super_admin.org_id
        assert response.json()["documents"] == []
        assert client.get(f"/api/v1/documents/{foreign.id}", headers=auth_headers(super_admin)).status_code == 404
