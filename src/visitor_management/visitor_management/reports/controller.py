from __future__ import annotations

import csv
import io

from flask import Flask, request

from ..common.datetime_utils import now_local
from ..common.http import make_guards, ok
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .service import Report, parse_report_filters, parse_report_type


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    staff_required = guards.roles_required(Role.ADMIN, Role.MANAGER, Role.RECEPTIONIST)
    svc = container.report_service

    def _write_report_csv(*, report: Report, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=report.fieldnames, extrasaction="ignore")
        writer.writeheader()
        for row in report.rows:
            writer.writerow({k: "" if v is None else v for k, v in row.items()})

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/reports/export", methods=["GET"], endpoint="reports_export")
    @staff_required
    def export():
        fmt = (request.args.get("format") or "csv").strip().lower()
        if fmt not in {"csv", "json"}:
            raise ValidationError("format must be csv or json")
        report_type = parse_report_type(request.args.get("type"))
        report = svc.build(parse_report_filters(request.args), report_type)

        if fmt == "json":
            return ok(report.rows, type=report.report_type, count=len(report.rows))
        filename = f"{report.report_type}_report_{now_local().strftime('%Y-%m-%d')}.csv"
        return _write_report_csv(report=report, filename=filename)

    @app.route("/api/reports/stats", methods=["GET"], endpoint="reports_stats")
    @staff_required
    def stats():
        return ok(svc.stats(parse_report_filters(request.args)))
