"""Plain-dict renderings of portal records for JSON responses and socket payloads."""


def _iso(dt):
    return dt.isoformat() if dt else None


def user_brief(user):
    if user is None:
        return None
    avatar_url = None
    if user.avatar:
        try:
            avatar_url = user.avatar.url
        except ValueError:
            avatar_url = None
    return {
        "id": user.pk,
        "full_name": user.display_name,
        "avatar_url": avatar_url,
    }


def user_to_dict(user):
    data = user_brief(user)
    data.update({
        "username": user.username,
        "email": user.email,
        "id_number": user.id_number,
        "role": user.role,
        "phone_number": user.phone_number,
        "project_id": user.project_id,
        "mentor": user_brief(user.mentor),
        "is_in_project": user.is_in_project,
    })
    return data


def file_to_dict(f):
    if f is None:
        return None
    return {
        "id": f.pk,
        "original_name": f.original_name,
        "size": f.size,
        "mime": f.mime,
        "author_id": f.author_id,
        "proposal_id": f.proposal_id,
    }


def proposal_to_dict(p):
    return {
        "id": p.pk,
        "project_name": p.project_name,
        "background": p.background,
        "objectives": p.objectives,
        "market_review": p.market_review,
        "new_or_improved": p.new_or_improved,
        "author_id": p.author_id,
        "author_snapshot": {"full_name": p.author_full_name, "id_number": p.author_id_number},
        "address": p.address,
        "mobile_phone": p.mobile_phone,
        "end_of_studies": p.end_of_studies.isoformat() if p.end_of_studies else None,
        "co_student_id": p.co_student_id,
        "co_student_snapshot": (
            {"full_name": p.co_student_full_name, "id_number": p.co_student_id_number}
            if p.co_student_full_name else None
        ),
        "suggested_mentor": user_brief(p.suggested_mentor),
        "attachment": file_to_dict(p.attachment),
        "status": p.status,
        "submitted_at": _iso(p.submitted_at),
        "reviewed_at": _iso(p.reviewed_at),
        "approval": {
            "approved_by": p.reviewed_by_id,
            "decision": p.decision or None,
            "reason": p.decision_reason or None,
        },
        "conflict_cleanup": (
            {"triggered_by_proposal_id": p.invalidated_by_id, "triggered_at": _iso(p.invalidated_at)}
            if p.invalidated_by_id else None
        ),
        "created_at": _iso(p.created_at),
        "updated_at": _iso(p.updated_at),
    }


def project_to_dict(project):
    return {
        "id": project.pk,
        "name": project.name,
        "background": project.background,
        "objectives": project.objectives,
        "status": project.status,
        "students": [user_brief(s) for s in project.students.all()],
        "mentor": user_brief(project.mentor),
        "proposal_id": project.proposal_id,
        "snapshots": {
            "student_names": project.student_names,
            "mentor_name": project.mentor_name,
            "approved_at": _iso(project.approved_at),
            "hod_reviewer": project.hod_reviewer_id,
        },
        "created_at": _iso(project.created_at),
        "updated_at": _iso(project.updated_at),
    }


def meeting_to_dict(m):
    return {
        "id": m.pk,
        "project": {"id": m.project_id, "name": m.project.name},
        "proposer": user_brief(m.proposer),
        "mentor": user_brief(m.mentor),
        "proposed_date": _iso(m.proposed_date),
        "status": m.status,
        "awaiting_approval_from": m.awaiting_approval_from,
        "attendees": [user_brief(a) for a in m.attendees.all()],
        "last_reschedule_reason": m.last_reschedule_reason or None,
        "created_at": _iso(m.created_at),
        "updated_at": _iso(m.updated_at),
    }


def task_to_dict(t):
    return {
        "id": t.pk,
        "meeting": {
            "id": t.meeting_id,
            "proposed_date": _iso(t.meeting.proposed_date),
            "status": t.meeting.status,
        },
        "project_id": t.project_id,
        "created_by": user_brief(t.created_by),
        "last_updated_by": user_brief(t.last_updated_by),
        "title": t.title,
        "description": t.description,
        "status": t.status,
        "due_date": _iso(t.due_date),
        "completed_at": _iso(t.completed_at),
        "due_date_at_completion": _iso(t.due_date_at_completion),
        "completed_late": t.completed_late,
        "is_overdue": t.is_overdue,
        "created_at": _iso(t.created_at),
        "updated_at": _iso(t.updated_at),
    }


def request_to_dict(r):
    return {
        "id": r.pk,
        "student": user_brief(r.student),
        "mentor": user_brief(r.mentor),
        "status": r.status,
        "date": _iso(r.created_at),
    }
