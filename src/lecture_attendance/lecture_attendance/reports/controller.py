from __future__ import annotations

import csv
import io

from flask import Flask, jsonify

from ..common.http import current_actor, login_required, optional_date_arg, optional_int_arg
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from .model import CSV_FIELDS, AttendanceReport


def register(app: Flask, container: Container) -> None:
    reports = container.report_service

    def _report_filters() -> dict:
        return {
            "course_id": optional_int_arg("course_id"),
            "subject_id": optional_int_arg("subject_id"),
            "start": optional_date_arg("start"),
            "end": optional_date_arg("end"),
        }

    def _teacher_report() -> AttendanceReport:
        actor = current_actor()
        if actor.role == Role.STUDENT:
            raise AuthorizationError("Students use their own report")
        teacher_id = optional_int_arg("teacher_id") or actor.user_id
        if teacher_id != actor.user_id and actor.role != Role.ADMIN:
            raise AuthorizationError("Only admins may view another teacher's report")
        return reports.build_report(teacher_id, **_report_filters())

    def _write_report_csv(*, data: AttendanceReport, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in data.rows:
            writer.writerow(row.to_csv_row())

        # BOM so spreadsheet apps pick up UTF-8 subject names.
        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/attendance/report", methods=["GET"], endpoint="attendance_report")
    @login_required
    def attendance_report():
        return jsonify(_teacher_report().to_dict())

    @app.route("/api/attendance/report.csv", methods=["GET"], endpoint="attendance_report_csv")
    @login_required
    def attendance_report_csv():
        data = _teacher_report()
        return _write_report_csv(data=data, filename=f"attendance_report_{current_actor().user_id}.csv")

    @app.route("/api/attendance/departments/<int:department_id>/report", methods=["GET"], endpoint="department_report")
    @login_required
    def department_report(department_id: int):
        actor = current_actor()
        if actor.role not in (Role.ADMIN, Role.HOD):
            raise AuthorizationError("Only HOD or admin may view department reports")
        if actor.role == Role.HOD and actor.department_id not in (None, department_id):
            raise AuthorizationError("HOD may only view their own department")
        data = reports.build_department_report(department_id, **_report_filters())
        return jsonify({"departmentId": department_id, **data.to_dict()})

    @app.route("/api/attendance/students/<int:student_id>/report", methods=["GET"], endpoint="student_report")
    @login_required
    def student_report(student_id: int):
        actor = current_actor()
        is_self = actor.role == Role.STUDENT and actor.user_id == student_id
        if not is_self and actor.role not in (Role.ADMIN, Role.HOD):
            raise AuthorizationError("You cannot view this student's report")
        return jsonify(reports.build_student_report(student_id).to_dict())
