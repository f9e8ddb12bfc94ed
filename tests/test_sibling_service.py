# tests/test_sibling_service.py
"""
Tests for sibling linking and detection
"""

import pytest

from irshad_admin.models import SiblingDetectionMethod, SiblingRelationship, db
from irshad_admin.services.sibling_service import SiblingService, calculate_confidence_score
from irshad_admin.utils.action_result import NotFoundError


@pytest.fixture
def children(dugsi_family):
    return [profile.person for profile in dugsi_family.profiles]


class TestLinking:
    """Manual sibling links"""

    def test_link_stores_sorted_pair(self, children):
        older, younger = children
        result = SiblingService().link_siblings(younger.id, [older.id], verified_by="admin")

        assert result == {"added": 1, "failed": 0, "failures": []}
        link = db.session.query(SiblingRelationship).one()
        assert link.person1_id < link.person2_id
        assert link.detection_method == SiblingDetectionMethod.MANUAL
        assert link.confidence == 1.0
        assert link.verified_at is not None

    def test_existing_link_is_skipped(self, children):
        service = SiblingService()
        service.link_siblings(children[0].id, [children[1].id])
        assert service.link_siblings(children[0].id, [children[1].id])["added"] == 0

    def test_failures_are_reported(self, children):
        result = SiblingService().link_siblings(children[0].id, [children[0].id, 999])
        assert result["added"] == 0
        assert result["failed"] == 2
        assert result["failures"][0]["error"] == "Cannot create sibling relationship with self"
        assert result["failures"][1] == {"sibling_id": 999, "error": "Person not found"}

    def test_unknown_person(self):
        with pytest.raises(NotFoundError):
            SiblingService().link_siblings(999, [1])

    def test_self_relationship_rejected(self, children):
        with pytest.raises(ValueError, match="with self"):
            SiblingService().create_sibling_relationship(children[0].id, children[0].id)

    def test_unlink_and_relink(self, children):
        service = SiblingService()
        first, second = children
        service.link_siblings(first.id, [second.id])
        assert service.are_siblings(second.id, first.id) is True
        assert service.get_siblings(first.id) == [second]

        assert service.unlink_siblings(second.id, first.id) is True
        assert service.unlink_siblings(second.id, first.id) is False
        assert service.are_siblings(first.id, second.id) is False
        assert service.get_siblings(first.id) == []

        service.link_siblings(first.id, [second.id])
        assert db.session.query(SiblingRelationship).count() == 1
        assert service.are_siblings(first.id, second.id) is True


class TestDetection:
    """Heuristic sibling suggestions"""

    def test_shared_guardian_ranks_first(self, children):
        first, second = children
        suggestions = SiblingService().detect_potential_siblings(first.id)

        top = suggestions[0]
        assert top.person.id == second.id
        assert top.method == SiblingDetectionMethod.GUARDIAN_MATCH
        assert top.confidence == 0.9
        assert top.reasons[0].startswith("Shared guardian:")

    def test_each_candidate_appears_once(self, children):
        suggestions = SiblingService().detect_potential_siblings(children[0].id)
        ids = [s.person.id for s in suggestions]
        assert len(ids) == len(set(ids))

    def test_parents_match_on_last_name_only(self, children, dugsi_family):
        suggestions = SiblingService().detect_potential_siblings(children[0].id)
        by_id = {s.person.id: s for s in suggestions}
        for guardian in dugsi_family.guardians:
            assert by_id[guardian.id].method == SiblingDetectionMethod.NAME_MATCH
            assert by_id[guardian.id].confidence == 0.5

    def test_existing_pairs_are_not_suggested(self, children):
        service = SiblingService()
        service.link_siblings(children[0].id, [children[1].id])
        service.unlink_siblings(children[0].id, children[1].id)

        suggestions = service.detect_potential_siblings(children[0].id)
        assert children[1].id not in {s.person.id for s in suggestions}


@pytest.mark.parametrize(
    "method,kwargs,expected",
    [
        (SiblingDetectionMethod.GUARDIAN_MATCH, {"shared_guardians": 2}, 0.95),
        (SiblingDetectionMethod.GUARDIAN_MATCH, {}, 0.9),
        (SiblingDetectionMethod.CONTACT_MATCH, {"shared_contacts": 5}, 0.95),
        (SiblingDetectionMethod.NAME_MATCH, {"name_match": True, "age_similarity": 2}, 0.8),
        (SiblingDetectionMethod.NAME_MATCH, {}, 0.5),
        (SiblingDetectionMethod.MANUAL, {}, 1.0),
    ],
)
def test_confidence_score(method, kwargs, expected):
    assert calculate_confidence_score(method, **kwargs) == expected
