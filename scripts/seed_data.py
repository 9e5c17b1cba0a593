"""Seed the database with a demo property, inspector and roof inspection."""

import asyncio
from datetime import datetime, timedelta, timezone

from roofcheck.db.engine import async_session_factory, create_tables
from roofcheck.db import crud
from roofcheck.schemas import DeficiencyIn
from roofcheck.services.criticality import CriticalityScorer


async def seed():
    await create_tables()

    async with async_session_factory() as db:
        existing = await crud.list_properties(db)
        if any(p.property_name == "Harbor Plaza" for p in existing):
            print("Demo property already exists, skipping seed.")
            return

        prop = await crud.create_property(db, "Harbor Plaza", "1 Pier Rd", "Portland", "ME")
        inspector = await crud.create_user(db, "dana.lee@example.com", "Dana", "Lee")
        print(f"Created property: {prop.property_name} (id: {prop.id})")
        print(f"Created inspector: {inspector.first_name} {inspector.last_name} (id: {inspector.id})")

        now = datetime.now(timezone.utc)
        done = await crud.create_inspection(
            db, property_id=prop.id, inspector_id=inspector.id, status="completed",
            scheduled_date=now - timedelta(days=2), completed_date=now - timedelta(days=1),
            inspection_type="annual", priority="normal", notes="Full roof walk, north section ponding.",
        )
        await crud.create_inspection(
            db, property_id=prop.id, inspector_id=inspector.id, status="scheduled",
            scheduled_date=now + timedelta(days=7), inspection_type="follow_up",
        )

        scorer = CriticalityScorer()
        for d in scorer.enhance_deficiencies([
            DeficiencyIn(type="membrane", location="North section", severity="medium",
                         description="Ponding water near drain, membrane aging"),
            DeficiencyIn(type="structural", location="Mechanical curb", severity="high",
                         description="Structural damage to deck support"),
        ]):
            row = await crud.create_deficiency(db, done.id, **d.model_dump(exclude={"id", "photos"}))
            await crud.create_photo(db, done.id, f"photos/{row.id}.jpg", kind="deficiency", deficiency_id=row.id)
            print(f"  Deficiency {row.type}: score {row.criticality_score}")
        for i in range(3):
            await crud.create_photo(db, done.id, f"photos/overview-{i}.jpg")

    print("\nSeed complete. Start the server with: uvicorn roofcheck.main:app --reload")


if __name__ == "__main__":
    asyncio.run(seed())
