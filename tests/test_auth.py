from sabores.models import AdminCredential
from sabores.security import verify_password
from sabores.utils.cipher import deobfuscate, obfuscate

from conftest import AUTH


def add_legacy_admin(db, username="legado", password="segredo", encrypted=None):
    credential = AdminCredential(
        username=username,
        password=password,
        encrypted_password=encrypted if encrypted is not None else obfuscate(password or ""),
    )
    db.add(credential)
    db.commit()
    return credential


def test_admin_creado_al_arrancar_con_hash(client, db_session):
    credential = db_session.query(AdminCredential).filter_by(username="admin").one()

    assert credential.password_hash
    assert credential.password is None
    assert credential.encrypted_password is None
    assert verify_password("admin123", credential.password_hash)


def test_login_correcto(client):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token"] == "authenticated_admin_token"
    assert body["user"] == {"username": "admin"}


def test_login_contrasena_incorrecta(client):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "errada"})
    assert response.status_code == 401


def test_login_usuario_inexistente(client):
    response = client.post("/api/auth/login", json={"username": "ninguem", "password": "admin123"})
    assert response.status_code == 401


def test_login_sin_datos(client):
    assert client.post("/api/auth/login", json={"username": "admin"}).status_code == 400
    assert client.post("/api/auth/login", json={}).status_code == 400


def test_login_heredado_con_texto_plano(client, db_session):
    # La copia ofuscada no coincide: entra por la contraseña en texto plano
    add_legacy_admin(db_session, password="segredo", encrypted="otra-cosa")

    response = client.post("/api/auth/login", json={"username": "legado", "password": "segredo"})
    assert response.status_code == 200


def test_login_heredado_con_forma_ofuscada(client, db_session):
    # Sin texto plano guardado: entra porque obfuscate(contraseña) coincide
    credential = AdminCredential(username="legado", password=None, encrypted_password=obfuscate("segredo"))
    db_session.add(credential)
    db_session.commit()

    response = client.post("/api/auth/login", json={"username": "legado", "password": "segredo"})
    assert response.status_code == 200


def test_login_heredado_incorrecto(client, db_session):
    add_legacy_admin(db_session, password="segredo")

    response = client.post("/api/auth/login", json={"username": "legado", "password": "outra"})
    assert response.status_code == 401


def test_login_heredado_migra_a_hash(client, db_session):
    add_legacy_admin(db_session, password="segredo")

    client.post("/api/auth/login", json={"username": "legado", "password": "segredo"})

    db_session.expire_all()
    credential = db_session.query(AdminCredential).filter_by(username="legado").one()
    assert credential.password is None
    assert credential.encrypted_password is None
    assert verify_password("segredo", credential.password_hash)
    # La contraseña sigue funcionando después de migrar
    response = client.post("/api/auth/login", json={"username": "legado", "password": "segredo"})
    assert response.status_code == 200


def test_verify_token(client):
    assert client.get("/api/auth/verify", headers=AUTH).json() == {"valid": True, "user": {"username": "admin"}}
    assert client.get("/api/auth/verify").json()["valid"] is False
    bad = {"Authorization": "Bearer token-falso"}
    assert client.get("/api/auth/verify", headers=bad).json()["valid"] is False


def test_rutas_protegidas_sin_token(client):
    assert client.post("/api/products", json={"products": []}).status_code == 401
    assert client.post("/api/categories", json={"categories": ["doces"]}).status_code == 401
    assert client.delete("/api/categories/doces").status_code == 401


def test_ofuscacion_reversible():
    assert obfuscate("admin123") == "=MjMx4WatRWY"
    assert deobfuscate(obfuscate("çãõ senha")) == "çãõ senha"


def test_debug_encrypt(client):
    body = client.get("/api/debug/encrypt/admin123").json()
    assert body == {"original": "admin123", "encrypted": "=MjMx4WatRWY", "decrypted": "admin123"}


def test_debug_credentials_no_expone_secretos(client):
    body = client.get("/api/debug/credentials").json()

    assert body["count"] == 1
    assert set(body["credentials"][0]) == {"id", "username", "hashed", "created_at"}
    assert body["credentials"][0]["hashed"] is True
