"""HTTP tests for category deletion and ownership."""

import pytest
from sqlalchemy.sql.dml import Delete, Update

BASE = "/api/v1/categories"


@pytest.mark.asyncio
async def test_delete_detaches_transactions_before_removing_category(auth_client, db_session, store, user):
    category = store.add_category(user.id, name="Groceries")
    db_session.queue(category)

    response = await auth_client.delete(f"{BASE}/{category.id}")

    assert response.status_code == 204
    lookup, detach = db_session.statements
    assert not isinstance(lookup, (Update, Delete))
    assert isinstance(detach, Update)
    assert detach.table.name == "transactions"
    params = detach.compile().params
    assert params["category_id"] is None
    assert category.id in params.values()
    assert user.id in params.values()
    assert db_session.deleted == [category]


@pytest.mark.asyncio
async def test_delete_unknown_category_is_404_and_changes_nothing(auth_client, db_session, user):
    response = await auth_client.delete(f"{BASE}/{user.id}")

    assert response.status_code == 404
    assert response.json()["detail"] == "Category not found"
    assert len(db_session.statements) == 1
    assert db_session.deleted == []


@pytest.mark.asyncio
async def test_update_renames_category(auth_client, db_session, store, user):
    category = store.add_category(user.id, name="Food")
    db_session.queue(category)

    response = await auth_client.patch(f"{BASE}/{category.id}", json={"name": "Dining"})

    assert response.status_code == 200
    assert response.json()["name"] == "Dining"
