from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import Actor, current_actor, json_body, login_required, optional_int_arg, pick
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, SessionNotFound, ValidationError
from ..sessions.model import Session


def _require_viewer(s: Session, actor: Actor) -> None:
    if actor.role == Role.ADMIN or actor.user_id == s.teacher_id:
        return
    if actor.role == Role.HOD and (actor.department_id is None or actor.department_id == s.department_id):
        return
    raise AuthorizationError("You cannot view this session")


def _marks_from(body) -> list:
    marks = body.get("marks") if isinstance(body, dict) else None
    if not isinstance(marks, list):
        raise ValidationError("Body must be {\"marks\": [{\"studentId\": ..., \"status\": ...}]}")
    return marks


def register(app: Flask, container: Container) -> None:
    lifecycle = container.lifecycle_service

    def _load_visible(session_id: int) -> Session:
        s = lifecycle.get_session(session_id)
        if s is None:
            raise SessionNotFound(session_id)
        _require_viewer(s, current_actor())
        return s

    @app.route("/api/attendance/sessions", methods=["POST"], endpoint="open_session")
    @login_required
    def open_session():
        actor = current_actor()
        body = json_body()
        s = lifecycle.open_session(
            actor_id=actor.user_id,
            actor_role=actor.role,
            teacher_id=pick(body, "teacherId", "teacher_id", actor.user_id),
            course_id=pick(body, "courseId", "course_id"),
            lecture_date=pick(body, "lectureDate", "lecture_date"),
            lecture_number=pick(body, "lectureNumber", "lecture_number"),
            subject_id=pick(body, "subjectId", "subject_id"),
        )
        return jsonify(s.to_dict()), 201

    @app.route("/api/attendance/sessions", methods=["GET"], endpoint="list_sessions")
    @login_required
    def list_sessions():
        actor = current_actor()
        department_id = optional_int_arg("department_id")
        teacher_id = optional_int_arg("teacher_id")

        if department_id is not None:
            if actor.role not in (Role.ADMIN, Role.HOD):
                raise AuthorizationError("Only HOD or admin may list a department")
            if actor.role == Role.HOD and actor.department_id not in (None, department_id):
                raise AuthorizationError("HOD may only list their own department")
            sessions = lifecycle.list_department_sessions(department_id)
        else:
            if teacher_id is not None and teacher_id != actor.user_id and actor.role != Role.ADMIN:
                raise AuthorizationError("Only admins may list another teacher's sessions")
            sessions = lifecycle.list_sessions(teacher_id or actor.user_id)

        return jsonify([s.to_dict() for s in sessions])

    @app.route("/api/attendance/sessions/<int:session_id>", methods=["GET"], endpoint="get_session")
    @login_required
    def get_session(session_id: int):
        return jsonify(_load_visible(session_id).to_dict())

    @app.route("/api/attendance/sessions/<int:session_id>", methods=["PATCH"], endpoint="reschedule_session")
    @login_required
    def reschedule_session(session_id: int):
        actor = current_actor()
        body = json_body()
        s = lifecycle.reschedule_session(
            session_id,
            actor_id=actor.user_id,
            actor_role=actor.role,
            lecture_date=pick(body, "lectureDate", "lecture_date"),
            lecture_number=pick(body, "lectureNumber", "lecture_number"),
        )
        return jsonify(s.to_dict())

    @app.route("/api/attendance/sessions/<int:session_id>/records", methods=["GET"], endpoint="session_records")
    @login_required
    def session_records(session_id: int):
        _load_visible(session_id)
        return jsonify([r.to_dict() for r in lifecycle.get_records(session_id)])

    @app.route("/api/attendance/sessions/<int:session_id>/mark", methods=["POST"], endpoint="mark_attendance")
    @login_required
    def mark_attendance(session_id: int):
        actor = current_actor()
        changed = lifecycle.mark_attendance(
            session_id,
            actor_id=actor.user_id,
            actor_role=actor.role,
            marks=_marks_from(request.get_json(silent=True)),
        )
        return jsonify({"sessionId": session_id, "updatedCount": changed})

    @app.route("/api/attendance/sessions/<int:session_id>/edit", methods=["PUT"], endpoint="edit_attendance")
    @login_required
    def edit_attendance(session_id: int):
        actor = current_actor()
        changed = lifecycle.edit_attendance(
            session_id,
            actor_id=actor.user_id,
            actor_role=actor.role,
            marks=_marks_from(request.get_json(silent=True)),
        )
        return jsonify({"sessionId": session_id, "updatedCount": changed})

    @app.route("/api/attendance/sessions/<int:session_id>/close", methods=["POST"], endpoint="close_session")
    @login_required
    def close_session(session_id: int):
        actor = current_actor()
        aggregate = lifecycle.close_session(session_id, actor_id=actor.user_id, actor_role=actor.role)
        return jsonify({"sessionId": session_id, **aggregate.to_dict()})
