from sabores.models import Category, Product

from conftest import AUTH, add_product


def add_categories(db, *ids):
    for cat_id in ids:
        db.add(Category(id=cat_id, name=cat_id.capitalize(), description=f"Categoria de {cat_id}"))
    db.commit()


def test_listar_categorias_ordenadas(client, db_session):
    add_categories(db_session, "salgados", "bebidas", "doces")

    body = client.get("/api/categories").json()
    assert [c["id"] for c in body["categories"]] == ["bebidas", "doces", "salgados"]


def test_eliminar_mueve_productos_a_otra_categoria(client, db_session):
    add_categories(db_session, "doces", "salgados")
    ids = [add_product(db_session, f"Doce {i}", [1], category="doces").id for i in range(3)]

    response = client.delete("/api/categories/doces", headers=AUTH)

    assert response.status_code == 200
    db_session.expire_all()
    assert db_session.query(Category).filter_by(id="doces").first() is None
    categories = {p.category for p in db_session.query(Product).filter(Product.id.in_(ids))}
    assert categories == {"salgados"}


def test_eliminar_sin_otra_categoria_deja_productos_igual(client, db_session):
    add_categories(db_session, "doces")
    p = add_product(db_session, "Brigadeiro", [1], category="doces")

    response = client.delete("/api/categories/doces", headers=AUTH)

    assert response.status_code == 200
    db_session.expire_all()
    assert db_session.query(Category).count() == 0
    assert db_session.get(Product, p.id).category == "doces"


def test_eliminar_categoria_inexistente(client):
    assert client.delete("/api/categories/nada", headers=AUTH).status_code == 404


def test_agregar_categoria(client, db_session):
    response = client.post(
        "/api/categories/add",
        json={"category": {"id": "tortas", "name": "Tortas"}},
        headers=AUTH,
    )

    assert response.status_code == 200
    category = db_session.get(Category, "tortas")
    assert category.description == "Categoria de Tortas"


def test_agregar_categoria_invalida(client):
    response = client.post("/api/categories/add", json={"category": {"id": "x"}}, headers=AUTH)
    assert response.status_code == 400
    assert client.post("/api/categories/add", json={}, headers=AUTH).status_code == 400


def test_guardar_categorias_reemplaza(client, db_session):
    add_categories(db_session, "doces", "vieja")

    response = client.post(
        "/api/categories",
        json={"categories": ["doces", {"id": "bebidas", "name": "Bebidas"}]},
        headers=AUTH,
    )

    assert response.status_code == 200
    assert response.json()["message"] == "2 categorias salvas"
    db_session.expire_all()
    assert sorted(c.id for c in db_session.query(Category)) == ["bebidas", "doces"]


def test_guardar_categorias_vacias(client):
    response = client.post("/api/categories", json={"categories": []}, headers=AUTH)
    assert response.status_code == 400
