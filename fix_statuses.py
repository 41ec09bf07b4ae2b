"""Re-derive every property's status from its units (after manual database edits)."""
from keystone import create_app
from keystone.models.property import Property
from keystone.services.property_status import update_property_status

app = create_app()
with app.app_context():
    changed = 0
    for property_id, before in Property.query.with_entities(Property.id, Property.status).all():
        after = update_property_status(property_id)
        if after is not None and after != before:
            print(f"Property {property_id}: {before} -> {after}")
            changed += 1

    if changed > 0:
        print(f"Updated {changed} property statuses.")
    else:
        print("All property statuses are consistent.")
