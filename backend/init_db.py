"""Initialize the database with default warning levels, punishment rules and prompt."""

from repositories.database import Base, SessionLocal, engine
from repositories.db_models import (
    PromptHistory,
    PromptTemplate,
    PunishmentRule,
    PunishmentType,
    WarningLevel,
)

DEFAULT_SYSTEM_PROMPT = """You are a moderation assistant for a Discord community.
Decide whether the message to analyze breaks one of these rules:

{{RULES_LIST}}

Use the previous messages only as context; judge the last message.
Answer with a JSON object of this shape:
{
  "violation": {"detected": bool, "ruleId": int or null,
                "levelName": string or null, "confidence": number},
  "analysis": {"explanation": string}
}
"levelName" must be the warning level of the rule that was broken."""


def get_default_warning_levels() -> list[dict]:
    """Default severity tiers: light, medium and severe."""
    return [
        {
            "name": "yellow",
            "color": "#facc15",
            "points": 1,
            "delete_message": False,
            "description": "Minor issue; the message stays up",
        },
        {
            "name": "orange",
            "color": "#fb923c",
            "points": 3,
            "delete_message": True,
            "description": "Clear rule violation; the message is removed",
        },
        {
            "name": "red",
            "color": "#ef4444",
            "points": 5,
            "delete_message": True,
            "description": "Severe violation; the message is removed",
        },
    ]


def get_default_punishment_rules() -> list[dict]:
    """Mute for an hour at 5 points, ban at 10."""
    return [
        {"punishment_type": PunishmentType.MUTE, "point_threshold": 5, "duration": 60},
        {"punishment_type": PunishmentType.BAN, "point_threshold": 10, "duration": None},
    ]


def seed_defaults(db) -> dict[str, int]:
    """
    Insert defaults into empty tables.

    Tables that already hold rows are left untouched.

    Returns:
        Number of rows created per table
    """
    created = {"warning_levels": 0, "punishment_rules": 0, "prompt_templates": 0}

    if db.query(WarningLevel).first() is None:
        for level in get_default_warning_levels():
            db.add(WarningLevel(**level))
            created["warning_levels"] += 1

    if db.query(PunishmentRule).first() is None:
        for rule in get_default_punishment_rules():
            db.add(PunishmentRule(**rule))
            created["punishment_rules"] += 1

    if db.query(PromptTemplate).first() is None:
        template = PromptTemplate(
            name="Default moderation prompt",
            system_prompt=DEFAULT_SYSTEM_PROMPT,
            is_active=True,
        )
        db.add(template)
        db.flush()
        db.add(
            PromptHistory(
                template_id=template.id,
                system_prompt=DEFAULT_SYSTEM_PROMPT,
                reason="Initial version",
            )
        )
        created["prompt_templates"] += 1

    db.commit()
    return created


def init_db():
    """Create tables and seed default data."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        created = seed_defaults(db)
        for table, count in created.items():
            if count:
                print(f"[OK] {count} default row(s) created in {table}")
        print("\n[OK] Database initialization complete!")
    except Exception as e:
        print(f"Error initializing database: {e}")
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
