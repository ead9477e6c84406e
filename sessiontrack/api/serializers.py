"""Conversion of ORM rows into the JSON payloads returned by the API."""

from sessiontrack.db import models
from sessiontrack.utils import iso, money


def serialize_user(user: models.User, *, with_profile: bool = False) -> dict:
    data = {
        'id': user.id,
        'email': user.email,
        'user_type': user.user_type,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'bio': user.bio,
        'location': user.location,
        'hourly_rate': money(user.hourly_rate),
        'profile_image_url': user.profile_image_url,
        'twofa_enabled': bool(user.twofa_secret),
        'created_at': iso(user.created_at),
        'updated_at': iso(user.updated_at),
    }
    if with_profile:
        data['musician_profile'] = serialize_profile(user.musician_profile)
    return data


def serialize_user_brief(user: models.User | None) -> dict | None:
    if user is None:
        return None
    return {
        'id': user.id,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'user_type': user.user_type,
        'profile_image_url': user.profile_image_url,
    }


def serialize_profile(profile: models.MusicianProfile | None) -> dict | None:
    if profile is None:
        return None
    return {
        'id': profile.id,
        'years_experience': profile.years_experience,
        'studio_experience': profile.studio_experience,
        'remote_recording_capability': profile.remote_recording_capability,
        'portfolio_url': profile.portfolio_url,
        'instruments': [
            {
                'instrument_id': mi.instrument_id,
                'name': mi.instrument.name,
                'category': mi.instrument.category,
                'proficiency_level': mi.proficiency_level,
            }
            for mi in profile.instruments
        ],
        'genres': [{'id': mg.genre_id, 'name': mg.genre.name} for mg in profile.genres],
    }


def serialize_instrument(instrument: models.Instrument) -> dict:
    return {'id': instrument.id, 'name': instrument.name, 'category': instrument.category}


def serialize_genre(genre: models.Genre) -> dict:
    return {'id': genre.id, 'name': genre.name}


def serialize_availability(slot: models.Availability) -> dict:
    return {
        'id': slot.id,
        'user_id': slot.user_id,
        'date': iso(slot.date),
        'start_time': slot.start_time.strftime('%H:%M'),
        'end_time': slot.end_time.strftime('%H:%M'),
        'recurring': slot.recurring,
        'recurrence_pattern': slot.recurrence_pattern,
        'recurrence_end_date': iso(slot.recurrence_end_date),
    }


def serialize_invitation(inv: models.ProjectInvitation) -> dict:
    return {
        'id': inv.id,
        'project_id': inv.project_id,
        'project_title': inv.project.title if inv.project else None,
        'musician_id': inv.musician_id,
        'musician': serialize_user_brief(inv.musician),
        'instrument_id': inv.instrument_id,
        'instrument': inv.instrument.name if inv.instrument else None,
        'status': inv.status,
        'message': inv.message,
        'rate': money(inv.rate),
        'created_at': iso(inv.created_at),
        'updated_at': iso(inv.updated_at),
    }


def serialize_participant(p: models.SessionMusician) -> dict:
    return {
        'id': p.id,
        'session_id': p.session_id,
        'musician_id': p.musician_id,
        'musician': serialize_user_brief(p.musician),
        'instrument_id': p.instrument_id,
        'instrument': p.instrument.name if p.instrument else None,
        'status': p.status,
        'rate': money(p.rate),
        'notes': p.notes,
        'created_at': iso(p.created_at),
        'updated_at': iso(p.updated_at),
    }


def serialize_session(session: models.RecordingSession, *, with_participants: bool = False) -> dict:
    data = {
        'id': session.id,
        'project_id': session.project_id,
        'organizer_id': session.project.creator_id,
        'title': session.title,
        'description': session.description,
        'start_time': iso(session.start_time),
        'end_time': iso(session.end_time),
        'duration_minutes': int((session.end_time - session.start_time).total_seconds() // 60),
        'location': session.location,
        'status': session.status,
        'notes': session.notes,
        'created_at': iso(session.created_at),
        'updated_at': iso(session.updated_at),
    }
    if with_participants:
        data['participants'] = [serialize_participant(p) for p in session.participants]
    return data


def serialize_project(project: models.Project, *, detail: bool = False, include_invitations: bool = False) -> dict:
    data = {
        'id': project.id,
        'title': project.title,
        'description': project.description,
        'creator_id': project.creator_id,
        'creator': serialize_user_brief(project.creator),
        'status': project.status,
        'start_date': iso(project.start_date),
        'end_date': iso(project.end_date),
        'budget': money(project.budget),
        'genres': [{'id': pg.genre_id, 'name': pg.genre.name} for pg in project.genres],
        'created_at': iso(project.created_at),
        'updated_at': iso(project.updated_at),
    }
    if detail:
        data['instruments'] = [
            {
                'instrument_id': pi.instrument_id,
                'name': pi.instrument.name,
                'requirements': pi.requirements,
                'filled': pi.filled,
            }
            for pi in project.instruments
        ]
        data['sessions'] = [serialize_session(s) for s in project.sessions]
    if include_invitations:
        data['invitations'] = [serialize_invitation(inv) for inv in project.invitations]
    return data


def serialize_payment(payment: models.Payment) -> dict:
    return {
        'id': payment.id,
        'session_id': payment.session_id,
        'project_id': payment.project_id,
        'payer_id': payment.payer_id,
        'payee_id': payment.payee_id,
        'payer': serialize_user_brief(payment.payer),
        'payee': serialize_user_brief(payment.payee),
        'amount': money(payment.amount),
        'status': payment.status,
        'payment_method': payment.payment_method,
        'transaction_id': payment.transaction_id,
        'notes': payment.notes,
        'created_at': iso(payment.created_at),
        'updated_at': iso(payment.updated_at),
    }


def serialize_message(message: models.Message) -> dict:
    return {
        'id': message.id,
        'sender_id': message.sender_id,
        'recipient_id': message.recipient_id,
        'content': message.content,
        'read': message.read,
        'project_id': message.project_id,
        'session_id': message.session_id,
        'created_at': iso(message.created_at),
    }


def serialize_review(review: models.Review) -> dict:
    return {
        'id': review.id,
        'reviewer_id': review.reviewer_id,
        'reviewer': serialize_user_brief(review.reviewer),
        'reviewee_id': review.reviewee_id,
        'project_id': review.project_id,
        'rating': review.rating,
        'content': review.content,
        'created_at': iso(review.created_at),
        'updated_at': iso(review.updated_at),
    }


def serialize_notification(notification: models.Notification) -> dict:
    return {
        'id': notification.id,
        'kind': notification.kind,
        'message': notification.message,
        'read': notification.read,
        'date': iso(notification.created_at),
    }
