"""Period reports for counselors and admins, as data and as a printable page."""
from collections import Counter
from datetime import date, datetime
from html import escape

from sqlalchemy.orm import Session

from entaneer_mind.models.appointment import STATUS_CANCELLED, STATUS_COMPLETED, Appointment
from entaneer_mind.models.case_note import CaseNote
from entaneer_mind.models.user import ROLE_CLIENT, User

TOP_TAG_LIMIT = 5
UNKNOWN_DEPARTMENT = 'Other'


def average_wait_days(db: Session, date_from: date | None = None, date_to: date | None = None) -> float:
    """Mean days between a client's urgency request and their first session."""
    query = db.query(Appointment.client_id, Appointment.date, User.urgency_submitted_at).join(
        User, User.id == Appointment.client_id
    ).filter(
        User.urgency_submitted_at.is_not(None),
        Appointment.status != STATUS_CANCELLED,
    )
    if date_from is not None:
        query = query.filter(Appointment.date >= date_from)
    if date_to is not None:
        query = query.filter(Appointment.date <= date_to)

    first_session: dict[int, tuple[date, datetime]] = {}
    for client_id, session_date, requested_at in query.all():
        if session_date is None:
            continue
        current = first_session.get(client_id)
        if current is None or session_date < current[0]:
            first_session[client_id] = (session_date, requested_at)

    waits = [max(0, (session_date - requested_at.date()).days) for session_date, requested_at in first_session.values()]
    if not waits:
        return 0.0
    return round(sum(waits) / len(waits), 1)


def build_report(db: Session, date_from: date, date_to: date) -> dict:
    appointments = db.query(Appointment).filter(
        Appointment.date >= date_from,
        Appointment.date <= date_to,
    ).all()

    people = {user.id: user for user in db.query(User).all()}

    completed = sum(1 for appointment in appointments if appointment.status == STATUS_COMPLETED)
    cancelled = sum(1 for appointment in appointments if appointment.status == STATUS_CANCELLED)

    new_clients = sum(
        1
        for user in people.values()
        if user.role == ROLE_CLIENT
        and user.created_at is not None
        and date_from <= user.created_at.date() <= date_to
    )

    notes = db.query(CaseNote.tags).filter(
        CaseNote.session_date >= date_from,
        CaseNote.session_date <= date_to,
    ).all()
    tag_counts = Counter(tag for (tags,) in notes for tag in (tags or []))

    department_counts: Counter = Counter()
    workload: Counter = Counter()
    monthly: Counter = Counter()
    for appointment in appointments:
        client = people.get(appointment.client_id)
        department_counts[(client.department if client else None) or UNKNOWN_DEPARTMENT] += 1
        monthly[appointment.date.strftime('%Y-%m')] += 1
        if appointment.status != STATUS_CANCELLED:
            counselor = people.get(appointment.counselor_id)
            workload[counselor.full_name if counselor else 'Unassigned'] += 1

    return {
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'summary': {
            'total_sessions': len(appointments),
            'completed_sessions': completed,
            'cancelled_sessions': cancelled,
            'new_clients': new_clients,
            'average_wait_days': average_wait_days(db, date_from, date_to),
        },
        'top_tags': [{'tag': tag, 'count': count} for tag, count in tag_counts.most_common(TOP_TAG_LIMIT)],
        'by_department': [
            {'department': department, 'count': count} for department, count in department_counts.most_common()
        ],
        'counselor_workload': [{'name': name, 'sessions': count} for name, count in workload.most_common()],
        'monthly_sessions': [{'month': month, 'count': monthly[month]} for month in sorted(monthly)],
    }


def completion_rate(summary: dict) -> int:
    if not summary['total_sessions']:
        return 0
    return round(summary['completed_sessions'] / summary['total_sessions'] * 100)


def _bar_rows(rows: list[dict], label_key: str, value_key: str) -> str:
    if not rows:
        return '<p class="empty">No data for this period.</p>'
    peak = max(row[value_key] for row in rows) or 1
    return ''.join(
        f'<div class="bar-row"><span class="bar-label">{escape(str(row[label_key]))}</span>'
        f'<span class="bar"><span class="fill" style="width:{round(row[value_key] / peak * 100)}%"></span></span>'
        f'<span class="bar-value">{row[value_key]}</span></div>'
        for row in rows
    )


REPORT_STYLE = """
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: 'Sarabun', sans-serif; color: #2C3E50; font-size: 13px; }
.page { width: 210mm; min-height: 297mm; margin: 0 auto; padding: 20mm; }
.header { margin-bottom: 24px; padding-bottom: 16px; border-bottom: 3px solid #4A90E2; }
.header h1 { font-size: 22px; }
.period { background: #F0F8FF; border-radius: 12px; padding: 12px 20px; margin-bottom: 24px; }
.cards { display: flex; gap: 12px; margin-bottom: 24px; }
.card { flex: 1; border: 1px solid #E1E8ED; border-radius: 10px; padding: 12px; }
.card .value { font-size: 20px; font-weight: 700; }
.section { margin-bottom: 24px; }
.section h2 { font-size: 15px; border-bottom: 1px solid #E1E8ED; margin-bottom: 12px; }
.bar-row { display: flex; align-items: center; gap: 8px; margin-bottom: 6px; }
.bar-label { width: 40%; }
.bar { flex: 1; background: #F0F4F8; height: 10px; border-radius: 5px; }
.fill { display: block; height: 10px; background: #4A90E2; border-radius: 5px; }
.empty { color: #5A6C7D; }
@media print { body { print-color-adjust: exact; -webkit-print-color-adjust: exact; } }
"""


def render_report_html(report: dict, generated_at: datetime | None = None) -> str:
    summary = report['summary']
    generated_at = generated_at or datetime.now()
    cards = [
        ('Total sessions', summary['total_sessions']),
        ('Completed', summary['completed_sessions']),
        ('Cancelled', summary['cancelled_sessions']),
        ('New clients', summary['new_clients']),
        ('Average wait', f"{summary['average_wait_days']} days"),
        ('Completion rate', f'{completion_rate(summary)}%'),
    ]
    card_html = ''.join(
        f'<div class="card"><div class="label">{escape(label)}</div><div class="value">{escape(str(value))}</div></div>'
        for label, value in cards
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8" />
<title>Counseling report {escape(report['period']['from'])} to {escape(report['period']['to'])}</title>
<style>{REPORT_STYLE}</style>
</head>
<body onload="window.print()">
<div class="page">
<div class="header"><h1>Counseling Service Report</h1><p>Generated {generated_at.strftime('%Y-%m-%d %H:%M')}</p></div>
<div class="period">Period: <strong>{escape(report['period']['from'])}</strong> to <strong>{escape(report['period']['to'])}</strong></div>
<div class="cards">{card_html}</div>
<div class="section"><h2>Top concerns</h2>{_bar_rows(report['top_tags'], 'tag', 'count')}</div>
<div class="section"><h2>Sessions by department</h2>{_bar_rows(report['by_department'], 'department', 'count')}</div>
<div class="section"><h2>Counselor workload</h2>{_bar_rows(report['counselor_workload'], 'name', 'sessions')}</div>
<div class="section"><h2>Sessions per month</h2>{_bar_rows(report['monthly_sessions'], 'month', 'count')}</div>
</div>
</body>
</html>
"""
