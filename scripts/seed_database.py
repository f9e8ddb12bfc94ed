# scripts/seed_database.py
"""
Database seeding script.
Populates the database with sample batches, students, families and teachers
for local development.
"""

import argparse
import random
import sys
from datetime import date

from faker import Faker

from app import app
from irshad_admin.models import (
    AttendanceClass,
    AttendanceRecord,
    AttendanceSession,
    Batch,
    BillingAccount,
    BillingAssignment,
    ContactPoint,
    Enrollment,
    GuardianRelationship,
    Person,
    Program,
    ProgramProfile,
    Shift,
    SiblingRelationship,
    Subscription,
    Teacher,
    TeacherAssignment,
    TeacherCheckIn,
    WhatsAppMessage,
    db,
)
from irshad_admin.services.attendance_service import AttendanceService
from irshad_admin.services.family_service import DugsiFamilyService
from irshad_admin.services.mahad_service import MahadService
from irshad_admin.services.teacher_service import TeacherService

fake = Faker()

BATCHES = [
    ("Fall 2024", date(2024, 9, 1), date(2025, 1, 31)),
    ("Spring 2025", date(2025, 2, 1), date(2025, 6, 30)),
]

CLASSES = [
    ("Quran Memorization", Shift.MORNING),
    ("Arabic Reading", Shift.MORNING),
    ("Islamic Studies", Shift.AFTERNOON),
]

stats = {
    "batches": 0,
    "students": 0,
    "families": 0,
    "children": 0,
    "teachers": 0,
    "assignments": 0,
    "classes": 0,
    "errors": [],
}


def _phone():
    return f"612-555-{random.randint(0, 9999):04d}"


def clear_database():
    """Remove all rows, dependents first"""
    print("Clearing existing data...")
    try:
        for model in (
            AttendanceRecord,
            AttendanceSession,
            AttendanceClass,
            TeacherCheckIn,
            TeacherAssignment,
            Teacher,
            WhatsAppMessage,
            BillingAssignment,
            Subscription,
            BillingAccount,
            Enrollment,
            ProgramProfile,
            Batch,
            SiblingRelationship,
            GuardianRelationship,
            ContactPoint,
            Person,
        ):
            model.query.delete()
        db.session.commit()
        print("✅ Database cleared")
    except Exception as e:
        db.session.rollback()
        print(f"❌ Error clearing database: {str(e)}")
        sys.exit(1)


def seed_batches(dry_run=False):
    print("\n📝 Seeding batches...")
    service = MahadService()
    batches = []
    for name, start, end in BATCHES:
        if dry_run:
            print(f"  [DRY RUN] Would create batch: {name}")
            continue
        existing = Batch.query.filter_by(name=name).first()
        if existing:
            print(f"  ⏭️  Batch '{name}' already exists, skipping")
            batches.append(existing)
            continue
        batches.append(service.create_batch(name, start, end))
        stats["batches"] += 1
        print(f"  ✅ Created batch: {name}")
    return batches


def seed_mahad_students(batches, count, dry_run=False):
    print("\n📝 Seeding Mahad students...")
    service = MahadService()
    for _ in range(count):
        name = fake.name()
        if dry_run:
            print(f"  [DRY RUN] Would create Mahad student: {name}")
            continue
        try:
            service.create_student(
                name=name,
                email=fake.unique.email(),
                phone=_phone(),
                date_of_birth=fake.date_of_birth(minimum_age=17, maximum_age=25),
                batch_id=random.choice(batches).id if batches else None,
            )
            stats["students"] += 1
            print(f"  ✅ Created Mahad student: {name}")
        except ValueError as e:
            stats["errors"].append(f"{name}: {e}")
            print(f"  ❌ Error creating Mahad student {name}: {e}")


def seed_dugsi_families(count, dry_run=False):
    print("\n📝 Seeding Dugsi families...")
    service = DugsiFamilyService()
    for _ in range(count):
        last_name = fake.last_name()
        parents = [
            {"first_name": fake.first_name(), "last_name": last_name, "email": fake.unique.email(), "phone": _phone()}
        ]
        if random.random() < 0.6:
            parents.append({"first_name": fake.first_name(), "last_name": last_name, "phone": _phone()})
        children = [
            {
                "first_name": fake.first_name(),
                "last_name": last_name,
                "date_of_birth": fake.date_of_birth(minimum_age=5, maximum_age=14),
            }
            for _ in range(random.randint(1, 4))
        ]
        if dry_run:
            print(f"  [DRY RUN] Would register the {last_name} family with {len(children)} child(ren)")
            continue
        try:
            registration = service.register_dugsi_family(parents, children)
            stats["families"] += 1
            stats["children"] += len(registration.profiles)
            print(f"  ✅ Registered the {last_name} family ({len(registration.profiles)} child(ren))")
        except ValueError as e:
            stats["errors"].append(f"{last_name} family: {e}")
            print(f"  ❌ Error registering the {last_name} family: {e}")


def seed_teachers(count, dry_run=False):
    print("\n📝 Seeding teachers...")
    service = TeacherService()
    teachers = []
    for _ in range(count):
        name = fake.name()
        shifts = random.choice([[Shift.MORNING], [Shift.AFTERNOON], [Shift.MORNING, Shift.AFTERNOON]])
        if dry_run:
            print(f"  [DRY RUN] Would create teacher: {name}")
            continue
        try:
            teacher = service.create_teacher(name, email=fake.unique.email(), shifts=shifts)
        except ValueError as e:
            stats["errors"].append(f"{name}: {e}")
            print(f"  ❌ Error creating teacher {name}: {e}")
            continue
        teachers.append(teacher)
        stats["teachers"] += 1
        print(f"  ✅ Created teacher: {name} ({', '.join(s.value for s in shifts)})")
    return teachers


def seed_teacher_assignments(teachers, dry_run=False):
    print("\n📝 Assigning Dugsi students to teachers...")
    if dry_run:
        print("  [DRY RUN] Would assign each Dugsi student to a teacher")
        return
    service = TeacherService()
    children = ProgramProfile.query.filter_by(program=Program.DUGSI_PROGRAM).all()
    for shift in Shift:
        eligible = [t for t in teachers if shift in t.get_shifts()]
        if not eligible:
            continue
        for child in children:
            if shift != Shift.MORNING and random.random() < 0.5:
                continue
            teacher = random.choice(eligible)
            try:
                service.assign_teacher_to_student(teacher.id, child.id, shift)
                stats["assignments"] += 1
            except ValueError as e:
                stats["errors"].append(f"assignment of profile {child.id}: {e}")
    print(f"  ✅ Created {stats['assignments']} assignment(s)")


def seed_classes(teachers, dry_run=False):
    print("\n📝 Seeding classes...")
    service = AttendanceService()
    for name, shift in CLASSES:
        if dry_run:
            print(f"  [DRY RUN] Would create class: {name}")
            continue
        if AttendanceClass.query.filter_by(name=name).first():
            print(f"  ⏭️  Class '{name}' already exists, skipping")
            continue
        eligible = [t for t in teachers if shift in t.get_shifts()]
        teacher = random.choice(eligible) if eligible else None
        service.create_class(name, shift, teacher_id=teacher.id if teacher else None)
        stats["classes"] += 1
        print(f"  ✅ Created class: {name} ({shift.value})")


def seed_database(clear=False, students=20, families=10, teachers=4, dry_run=False):
    """Main function to seed the database"""
    print("=" * 60)
    print("Database Seeding Script")
    print("=" * 60)

    if dry_run:
        print("\n⚠️  DRY RUN MODE - No changes will be made to the database\n")

    with app.app_context():
        db.create_all()
        if clear and not dry_run:
            clear_database()

        batches = seed_batches(dry_run)
        seed_mahad_students(batches, students, dry_run)
        seed_dugsi_families(families, dry_run)
        seeded_teachers = seed_teachers(teachers, dry_run)
        seed_teacher_assignments(seeded_teachers, dry_run)
        seed_classes(seeded_teachers, dry_run)

        print("\n" + "=" * 60)
        print("Seeding Summary")
        print("=" * 60)
        print(f"Batches: {stats['batches']}")
        print(f"Mahad students: {stats['students']}")
        print(f"Dugsi families: {stats['families']} ({stats['children']} children)")
        print(f"Teachers: {stats['teachers']}")
        print(f"Teacher assignments: {stats['assignments']}")
        print(f"Classes: {stats['classes']}")
        if stats["errors"]:
            print(f"\n⚠️  {len(stats['errors'])} error(s):")
            for error in stats["errors"]:
                print(f"  - {error}")


def main():
    parser = argparse.ArgumentParser(description="Seed the database with sample school data")
    parser.add_argument("--clear", action="store_true", help="Clear existing data before seeding")
    parser.add_argument("--students", type=int, default=20, help="Mahad students to create (default: 20)")
    parser.add_argument("--families", type=int, default=10, help="Dugsi families to create (default: 10)")
    parser.add_argument("--teachers", type=int, default=4, help="Teachers to create (default: 4)")
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for repeatable data",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be created without actually creating",
    )

    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)
        Faker.seed(args.seed)

    seed_database(
        clear=args.clear,
        students=args.students,
        families=args.families,
        teachers=args.teachers,
        dry_run=args.dry_run,
    )


if __name__ == "__main__":
    main()
