# irshad_admin/routes/serializers.py
"""
JSON shapes returned by the API
"""


def _iso(value):
    return value.isoformat() if value is not None else None


def _enum(value):
    return value.value if value is not None else None


def serialize_person(person):
    return {
        "id": person.id,
        "name": person.name,
        "first_name": person.first_name,
        "last_name": person.last_name,
        "date_of_birth": _iso(person.date_of_birth),
        "email": person.get_primary_email(),
        "phone": person.get_primary_phone(),
    }


def serialize_batch(batch, student_count=None):
    data = {
        "id": batch.id,
        "name": batch.name,
        "start_date": _iso(batch.start_date),
        "end_date": _iso(batch.end_date),
    }
    if student_count is not None:
        data["student_count"] = student_count
    return data


def serialize_enrollment(enrollment):
    return {
        "id": enrollment.id,
        "program_profile_id": enrollment.program_profile_id,
        "batch_id": enrollment.batch_id,
        "batch_name": enrollment.batch.name if enrollment.batch else None,
        "status": enrollment.status.value,
        "start_date": _iso(enrollment.start_date),
        "end_date": _iso(enrollment.end_date),
        "reason": enrollment.reason,
        "notes": enrollment.notes,
        "is_active": enrollment.is_active,
    }


def serialize_profile(profile, include_guardians=False):
    person = profile.person
    active = profile.get_active_enrollment()
    data = {
        "id": profile.id,
        "person_id": person.id,
        "name": person.name,
        "email": person.get_primary_email(),
        "phone": person.get_primary_phone(),
        "date_of_birth": _iso(person.date_of_birth),
        "program": profile.program.value,
        "status": profile.status.value,
        "monthly_rate": profile.monthly_rate,
        "custom_rate": profile.custom_rate,
        "gender": _enum(profile.gender),
        "education_level": _enum(profile.education_level),
        "grade_level": _enum(profile.grade_level),
        "school_name": profile.school_name,
        "health_info": profile.health_info,
        "graduation_status": _enum(profile.graduation_status),
        "payment_frequency": _enum(profile.payment_frequency),
        "billing_type": _enum(profile.billing_type),
        "family_reference_id": profile.family_reference_id,
        "batch": serialize_batch(active.batch) if active and active.batch else None,
        "active_enrollment": serialize_enrollment(active) if active else None,
        "created_at": _iso(profile.created_at),
    }
    if include_guardians:
        data["guardians"] = [serialize_person(g) for g in person.get_active_guardians()]
    return data


def serialize_subscription(subscription):
    return {
        "id": subscription.id,
        "stripe_subscription_id": subscription.stripe_subscription_id,
        "stripe_customer_id": subscription.stripe_customer_id,
        "account_type": subscription.stripe_account_type.value,
        "status": subscription.status.value,
        "amount": subscription.amount,
        "currency": subscription.currency,
        "interval": subscription.interval,
        "current_period_start": _iso(subscription.current_period_start),
        "current_period_end": _iso(subscription.current_period_end),
        "paid_until": _iso(subscription.paid_until),
    }


def serialize_teacher(teacher):
    person = teacher.person
    return {
        "id": teacher.id,
        "person_id": person.id,
        "name": person.name,
        "email": person.get_primary_email(),
        "phone": person.get_primary_phone(),
        "shifts": [s.value for s in teacher.get_shifts()],
        "is_active": teacher.is_active,
    }


def serialize_teacher_assignment(assignment):
    return {
        "id": assignment.id,
        "teacher_id": assignment.teacher_id,
        "program_profile_id": assignment.program_profile_id,
        "student_name": assignment.program_profile.person.name,
        "shift": assignment.shift.value,
        "start_date": _iso(assignment.start_date),
        "end_date": _iso(assignment.end_date),
        "notes": assignment.notes,
        "is_active": assignment.is_active,
    }


def serialize_check_in(check_in):
    return {
        "id": check_in.id,
        "teacher_id": check_in.teacher_id,
        "date": _iso(check_in.date),
        "shift": check_in.shift.value,
        "clock_in_time": _iso(check_in.clock_in_time),
        "clock_in_valid": check_in.clock_in_valid,
        "is_late": check_in.is_late,
        "clock_out_time": _iso(check_in.clock_out_time),
        "notes": check_in.notes,
    }


def serialize_class(attendance_class):
    return {
        "id": attendance_class.id,
        "name": attendance_class.name,
        "shift": attendance_class.shift.value,
        "teacher_id": attendance_class.teacher_id,
        "description": attendance_class.description,
        "is_active": attendance_class.is_active,
    }


def serialize_record(record):
    return {
        "id": record.id,
        "program_profile_id": record.program_profile_id,
        "status": record.status.value,
        "lesson_completed": record.lesson_completed,
        "surah_name": record.surah_name,
        "ayat_from": record.ayat_from,
        "ayat_to": record.ayat_to,
        "lesson_notes": record.lesson_notes,
        "notes": record.notes,
        "marked_at": _iso(record.marked_at),
    }


def serialize_session(attendance_session, include_records=False):
    data = {
        "id": attendance_session.id,
        "class_id": attendance_session.class_id,
        "class_name": attendance_session.attendance_class.name,
        "teacher_id": attendance_session.teacher_id,
        "date": _iso(attendance_session.date),
        "notes": attendance_session.notes,
        "is_closed": attendance_session.is_closed,
    }
    if include_records:
        data["records"] = [serialize_record(r) for r in attendance_session.records]
    return data
