"""
Department-wide figures for the HOD dashboard and its Excel / PDF exports.
"""
import io

import openpyxl
from django.db.models import Count, Q
from django.utils import timezone
from django.utils.html import escape
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .meetings import materialize_meetings
from .models import Meeting, Project, Proposal, Role, Task, User
from .utils import format_local

PROJECT_HEADERS = [
    "Project",
    "Students",
    "Mentor",
    "Status",
    "Approved",
    "Meetings held",
    "Open tasks",
    "Overdue tasks",
]


def _counts_by_status(model, choices):
    counts = dict(model.objects.values_list("status").annotate(n=Count("pk")).order_by())
    return {value: counts.get(value, 0) for value in choices.values}


def build_dashboard_data(now=None):
    """
    Central function: every figure used by the dashboard endpoint and both
    exports, so the three always agree.
    """
    now = now or timezone.now()
    materialize_meetings(now=now)

    open_tasks = Task.objects.filter(status=Task.Status.OPEN)

    mentor_stats = []
    mentors = (
        User.objects.filter(role=Role.MENTOR)
        .annotate(
            student_count=Count("mentored_students", filter=Q(mentored_students__role=Role.STUDENT), distinct=True),
            project_count=Count("mentored_projects", distinct=True),
        )
        .order_by("full_name", "username")
    )
    for mentor in mentors:
        mentor_tasks = open_tasks.filter(project__mentor=mentor)
        mentor_stats.append({
            "mentor_id": mentor.pk,
            "mentor_name": mentor.display_name,
            "students": mentor.student_count,
            "projects": mentor.project_count,
            "open_tasks": mentor_tasks.count(),
            "overdue_tasks": mentor_tasks.filter(due_date__lt=now).count(),
        })

    projects_list = []
    projects = (
        Project.objects.select_related("mentor")
        .annotate(
            held=Count("meetings", filter=Q(meetings__status=Meeting.Status.HELD), distinct=True),
            open_tasks=Count("tasks", filter=Q(tasks__status=Task.Status.OPEN), distinct=True),
            overdue=Count(
                "tasks", filter=Q(tasks__status=Task.Status.OPEN, tasks__due_date__lt=now), distinct=True
            ),
        )
        .order_by("name")
    )
    for project in projects:
        projects_list.append({
            "project_id": project.pk,
            "name": project.name,
            "students": ", ".join(project.student_names),
            "mentor_name": project.mentor.display_name if project.mentor else project.mentor_name,
            "status": project.get_status_display(),
            "approved_at": format_local(project.approved_at),
            "meetings_held": project.held,
            "open_tasks": project.open_tasks,
            "overdue_tasks": project.overdue,
        })

    return {
        "generated_at": now,
        "total_students": User.objects.filter(role=Role.STUDENT).count(),
        "students_without_project": User.objects.filter(role=Role.STUDENT, project__isnull=True).count(),
        "projects_by_status": _counts_by_status(Project, Project.Status),
        "proposals_by_status": _counts_by_status(Proposal, Proposal.Status),
        "meetings_by_status": _counts_by_status(Meeting, Meeting.Status),
        "open_tasks": open_tasks.count(),
        "overdue_tasks": open_tasks.filter(due_date__lt=now).count(),
        "completed_late_tasks": Task.objects.filter(status=Task.Status.COMPLETED, completed_late=True).count(),
        "mentor_stats": mentor_stats,
        "projects_list": projects_list,
    }


def _project_row(p):
    return [
        p["name"],
        p["students"],
        p["mentor_name"],
        p["status"],
        p["approved_at"],
        p["meetings_held"],
        p["open_tasks"],
        p["overdue_tasks"],
    ]


def _auto_width(ws):
    for col in ws.columns:
        longest = max((len(str(cell.value)) for cell in col if cell.value is not None), default=0)
        ws.column_dimensions[col[0].column_letter].width = max(12, longest + 2)


def export_excel(data):
    """Workbook bytes: one sheet of projects, one of mentor load."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Projects"
    ws.append(PROJECT_HEADERS)
    for p in data["projects_list"]:
        ws.append(_project_row(p))
    _auto_width(ws)

    ws = wb.create_sheet("Mentors")
    ws.append(["Mentor", "Students", "Projects", "Open tasks", "Overdue tasks"])
    for m in data["mentor_stats"]:
        ws.append([m["mentor_name"], m["students"], m["projects"], m["open_tasks"], m["overdue_tasks"]])
    _auto_width(ws)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def export_pdf(data, generated_by=""):
    buffer = io.BytesIO()
    page_width, _ = landscape(A4)
    generated = format_local(data["generated_at"])

    def add_footer(c, doc):
        c.setFont("Helvetica", 8)
        c.drawCentredString(page_width / 2, 20, f"Page {c.getPageNumber()}")
        c.drawString(30, 20, f"Generated: {generated}")

    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=30,
        rightMargin=30,
        topMargin=40,
        bottomMargin=50,
    )
    styles = getSampleStyleSheet()
    story = [
        Paragraph("<b>Department Project Report</b>", styles["Title"]),
        Spacer(1, 8),
        Paragraph(f"<b>Generated By (HOD):</b> {escape(generated_by)}<br/><b>Generated On:</b> {generated}", styles["Normal"]),
        Spacer(1, 10),
    ]

    by_status = ", ".join(
        f"{label}: {data['projects_by_status'][value]}" for value, label in Project.Status.choices
    )
    story.append(Paragraph(
        f"Projects - {by_status} &nbsp;&nbsp;&nbsp; "
        f"Open tasks: {data['open_tasks']} &nbsp;&nbsp;&nbsp; "
        f"Overdue: {data['overdue_tasks']}",
        styles["Normal"],
    ))
    story.append(Spacer(1, 10))

    table_data = [PROJECT_HEADERS] + [[str(v) for v in _project_row(p)] for p in data["projects_list"]]
    tbl = Table(table_data, colWidths=[130, 160, 110, 80, 90, 70, 60, 70], repeatRows=1)
    tbl.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#000000")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 9),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 1), (-1, -1), 8),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("INNERGRID", (0, 0), (-1, -1), 0.3, colors.grey),
        ("BOX", (0, 0), (-1, -1), 0.5, colors.black),
    ]))
    story.append(tbl)

    doc.build(story, onFirstPage=add_footer, onLaterPages=add_footer)
    return buffer.getvalue()
