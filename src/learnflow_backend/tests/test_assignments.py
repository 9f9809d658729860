import pytest

from learnflow_backend.api.exceptions import BadRequestException, ForbiddenException, NotFoundException
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.assignment import CourseAssignment, IndexAssignment
from learnflow_backend.model.content import Course
from learnflow_backend.services.assignments import (
    assign_users,
    has_course_access,
    resolve_assigned_course_ids,
    resolve_assigned_courses,
    unassign,
)


@pytest.fixture
def world(db, make_user, make_tree):
    trainer = make_user("trainer_x", UserRole.TRAINER)
    other_trainer = make_user("trainer_y", UserRole.TRAINER)
    learner = make_user("learner_x", UserRole.CANDIDATE, created_by=trainer)
    index = make_tree(trainer, courses=2, name="Sales")
    second = make_tree(trainer, courses=1, name="Support")
    return {
        "trainer": trainer,
        "other_trainer": other_trainer,
        "learner": learner,
        "index": index,
        "second": second,
    }


class TestResolution:

    def test_no_assignments_resolves_to_empty_set(self, db, world):
        assert resolve_assigned_course_ids(db, world["learner"].id) == set()
        assert resolve_assigned_courses(db, world["learner"].id) == []

    def test_union_of_direct_and_index_assignments(self, db, world):
        learner, trainer = world["learner"], world["trainer"]
        direct_course = world["second"].courses[0]

        db.add(IndexAssignment(user_id=learner.id, index_id=world["index"].id, assigned_by=trainer.id))
        db.add(CourseAssignment(user_id=learner.id, course_id=direct_course.id, assigned_by=trainer.id))
        db.commit()

        expected = {c.id for c in world["index"].courses} | {direct_course.id}
        assert resolve_assigned_course_ids(db, learner.id) == expected

    def test_overlapping_assignments_appear_once(self, db, world):
        learner, trainer = world["learner"], world["trainer"]
        course = world["index"].courses[0]

        db.add(IndexAssignment(user_id=learner.id, index_id=world["index"].id, assigned_by=trainer.id))
        db.add(CourseAssignment(user_id=learner.id, course_id=course.id, assigned_by=trainer.id))
        db.commit()

        courses = resolve_assigned_courses(db, learner.id)
        assert [c.id for c in courses].count(course.id) == 1
        assert len(courses) == 2

    def test_inactive_courses_are_excluded(self, db, world):
        learner, trainer = world["learner"], world["trainer"]
        hidden = world["index"].courses[1]
        direct = world["second"].courses[0]

        db.add(IndexAssignment(user_id=learner.id, index_id=world["index"].id, assigned_by=trainer.id))
        db.add(CourseAssignment(user_id=learner.id, course_id=direct.id, assigned_by=trainer.id))
        hidden.is_active = False
        direct.is_active = False
        db.commit()

        assert resolve_assigned_course_ids(db, learner.id) == {world["index"].courses[0].id}
        assert not has_course_access(db, learner.id, hidden)
        assert not has_course_access(db, learner.id, direct)

    def test_courses_added_later_are_inherited(self, db, world):
        learner, trainer = world["learner"], world["trainer"]
        db.add(IndexAssignment(user_id=learner.id, index_id=world["second"].id, assigned_by=trainer.id))
        db.commit()
        assert len(resolve_assigned_course_ids(db, learner.id)) == 1

        db.add(Course(index_id=world["second"].id, created_by=trainer.id, title="New course"))
        db.commit()

        assert len(resolve_assigned_course_ids(db, learner.id)) == 2


class TestAssignUsers:

    def test_assign_course_and_reassign_is_noop(self, db, world):
        course = world["index"].courses[0]
        created = assign_users(db, world["trainer"].id, [world["learner"].id], course_id=course.id)
        db.commit()
        assert created == 1

        created = assign_users(db, world["trainer"].id, [world["learner"].id, world["learner"].id], course_id=course.id)
        db.commit()
        assert created == 0
        assert db.query(CourseAssignment).count() == 1

    def test_assign_index(self, db, world):
        created = assign_users(db, world["trainer"].id, [world["learner"].id], index_id=world["index"].id)
        db.commit()
        assert created == 1
        assert len(resolve_assigned_course_ids(db, world["learner"].id)) == 2

    def test_exactly_one_target(self, db, world):
        with pytest.raises(BadRequestException):
            assign_users(db, world["trainer"].id, [world["learner"].id])
        with pytest.raises(BadRequestException):
            assign_users(db, world["trainer"].id, [world["learner"].id],
                         course_id=world["index"].courses[0].id, index_id=world["index"].id)

    def test_only_own_learners(self, db, world):
        own_index = world["index"]
        with pytest.raises(ForbiddenException):
            assign_users(db, world["other_trainer"].id, [world["learner"].id], index_id=own_index.id)

    def test_only_own_content(self, db, world, make_user):
        stranger = make_user("learner_y", UserRole.CANDIDATE, created_by=world["other_trainer"])
        with pytest.raises(ForbiddenException):
            assign_users(db, world["other_trainer"].id, [stranger.id], index_id=world["index"].id)

    def test_unknown_user(self, db, world):
        with pytest.raises(NotFoundException):
            assign_users(db, world["trainer"].id, ["missing"], index_id=world["index"].id)

    def test_unassign(self, db, world):
        assign_users(db, world["trainer"].id, [world["learner"].id], index_id=world["index"].id)
        db.commit()

        with pytest.raises(NotFoundException):
            unassign(db, world["other_trainer"].id, "index", world["learner"].id, world["index"].id)

        unassign(db, world["trainer"].id, "index", world["learner"].id, world["index"].id)
        db.commit()
        assert db.query(IndexAssignment).count() == 0

        with pytest.raises(NotFoundException):
            unassign(db, world["trainer"].id, "index", world["learner"].id, world["index"].id)
