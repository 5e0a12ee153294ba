from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..errors import NotFound, parse_id


def record_template_use(db: Session, model, template_id: str):
    """
    Bump a template's usage counter in one UPDATE statement.

    The increment happens in the database so concurrent uses never lose a
    count. Returns the refreshed template.
    """
    pk = parse_id(template_id, "Template not found")
    result = db.execute(
        update(model)
        .where(model.id == pk)
        .values(usage_count=model.usage_count + 1, last_used_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound("Template not found")
    db.commit()
    template = db.get(model, pk)
    db.refresh(template)
    return template
