"""
Cliente PIX contra un transporte simulado de httpx.
"""
import asyncio
import json

import httpx
import pytest

from sabores.config import Settings
from sabores.pix import NETWORK_ERROR_MESSAGES, PixGateway, PixGatewayError, describe_error, is_transient
from sabores.utils.retry import RetryPolicy


def make_settings(**overrides):
    settings = Settings()
    settings.pix_base_url = "https://pix.test"
    settings.pix_client_id = "client-id"
    settings.pix_client_secret = "client-secret"
    settings.pix_key = "loja@sabores.com.br"
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def make_gateway(handler, clock=None, **overrides):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    policy = RetryPolicy(
        max_attempts=3,
        base_delay=1.0,
        retry_on=(PixGatewayError,),
        should_retry=is_transient,
        async_sleep=fake_sleep,
    )
    kwargs = {"clock": clock} if clock else {}
    gateway = PixGateway(
        make_settings(**overrides),
        transport=httpx.MockTransport(handler),
        retry_policy=policy,
        **kwargs,
    )
    return gateway, delays


class FakeEfi:
    """Respuestas mínimas de la API Pix."""

    def __init__(self):
        self.requests = []
        self.token_failures = 0
        self.charge_failures = 0
        self.token_status = None
        self.charge_status = None
        self.status = "ATIVA"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/oauth/token":
            if self.token_status:
                return httpx.Response(self.token_status, json={"error_description": "credenciais inválidas"})
            if self.token_failures:
                self.token_failures -= 1
                return httpx.Response(503, json={"error_description": "indisponível"})
            return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})
        if request.headers.get("Authorization") != "Bearer tok-1":
            return httpx.Response(401, json={"mensagem": "token inválido"})
        if path == "/v2/cob" and request.method == "POST":
            if self.charge_failures:
                self.charge_failures -= 1
                raise httpx.ConnectTimeout("timeout", request=request)
            if self.charge_status:
                return httpx.Response(self.charge_status, json={"mensagem": "chave inválida"})
            return httpx.Response(201, json={
                "txid": "abc123",
                "loc": {"id": 55},
                "status": "ATIVA",
                "pixCopiaECola": "000201...",
            })
        if path == "/v2/loc/55/qrcode":
            return httpx.Response(200, json={"qrcode": "000201...", "imagemQrcode": "data:image/png;base64,AA"})
        if path == "/v2/cob/abc123":
            return httpx.Response(200, json={"txid": "abc123", "status": self.status})
        return httpx.Response(404, json={"mensagem": "não encontrado"})

    def paths(self):
        return [r.url.path for r in self.requests]


def test_crear_cobro_y_qr():
    efi = FakeEfi()
    gateway, _ = make_gateway(efi)

    async def run():
        charge = await gateway.create_charge("12.5", description="Pedido de Ana")
        qr = await gateway.generate_qrcode(charge["loc_id"])
        await gateway.close()
        return charge, qr

    charge, qr = asyncio.run(run())

    assert charge == {"txid": "abc123", "loc_id": "55", "status": "ATIVA", "qr_code": "000201..."}
    assert qr["qr_code_image"].startswith("data:image/png")
    body = json.loads(efi.requests[1].content)
    assert body["valor"] == {"original": "12.50"}
    assert body["chave"] == "loja@sabores.com.br"
    assert body["solicitacaoPagador"] == "Pedido de Ana"


def test_token_se_reutiliza_hasta_vencer():
    efi = FakeEfi()
    now = [0.0]
    gateway, _ = make_gateway(efi, clock=lambda: now[0])

    async def run():
        await gateway.get_charge_status("abc123")
        await gateway.get_charge_status("abc123")
        now[0] += 3600
        await gateway.get_charge_status("abc123")

    asyncio.run(run())

    assert efi.paths().count("/oauth/token") == 2


def test_token_reintenta_con_espera_lineal():
    efi = FakeEfi()
    efi.token_failures = 2
    gateway, delays = make_gateway(efi)

    token = asyncio.run(gateway.get_access_token())

    assert token == "tok-1"
    assert delays == [1.0, 2.0]
    assert efi.paths().count("/oauth/token") == 3


def test_token_agota_reintentos():
    efi = FakeEfi()
    efi.token_failures = 5
    gateway, delays = make_gateway(efi)

    with pytest.raises(PixGatewayError) as exc:
        asyncio.run(gateway.get_access_token())

    assert exc.value.status_code == 503
    assert delays == [1.0, 2.0]


def test_cobro_reintenta_tras_timeout():
    efi = FakeEfi()
    efi.charge_failures = 1
    gateway, delays = make_gateway(efi)

    charge = asyncio.run(gateway.create_charge(10))

    assert charge["txid"] == "abc123"
    assert delays == [1.0]


def test_cobro_con_error_4xx_no_se_reintenta():
    efi = FakeEfi()
    efi.charge_status = 400
    gateway, delays = make_gateway(efi)

    with pytest.raises(PixGatewayError) as exc:
        asyncio.run(gateway.create_charge(10))

    assert exc.value.status_code == 400
    assert "chave inválida" in exc.value.message
    assert delays == []
    assert efi.paths().count("/v2/cob") == 1


def test_cobro_con_error_5xx_se_reintenta():
    efi = FakeEfi()
    efi.charge_status = 502
    gateway, delays = make_gateway(efi)

    with pytest.raises(PixGatewayError):
        asyncio.run(gateway.create_charge(10))

    assert delays == [1.0, 2.0]
    assert efi.paths().count("/v2/cob") == 3


def test_token_con_credenciales_rechazadas_no_se_reintenta():
    efi = FakeEfi()
    efi.token_status = 401
    gateway, delays = make_gateway(efi)

    with pytest.raises(PixGatewayError):
        asyncio.run(gateway.create_charge(10))

    assert delays == []
    assert efi.paths() == ["/oauth/token"]


def test_token_caido_no_multiplica_llamadas_en_el_cobro():
    efi = FakeEfi()
    efi.token_failures = 10
    gateway, _ = make_gateway(efi)

    with pytest.raises(PixGatewayError):
        asyncio.run(gateway.create_charge(10))

    assert efi.paths() == ["/oauth/token"] * 3


def test_estado_no_se_reintenta():
    efi = FakeEfi()
    gateway, delays = make_gateway(efi)

    asyncio.run(gateway.get_access_token())
    gateway._token = "vencido"
    gateway._token_expires_at = float("inf")

    with pytest.raises(PixGatewayError) as exc:
        asyncio.run(gateway.get_charge_status("abc123"))

    assert exc.value.status_code == 401
    assert "token inválido" in exc.value.message
    assert delays == []
    # El 401 descarta el token para la próxima llamada
    assert gateway._token is None


def test_estado_del_cobro():
    efi = FakeEfi()
    efi.status = "CONCLUIDA"
    gateway, _ = make_gateway(efi)

    assert asyncio.run(gateway.get_charge_status("abc123")) == "CONCLUIDA"


def test_sin_credenciales():
    gateway, _ = make_gateway(FakeEfi(), pix_client_id="")

    with pytest.raises(PixGatewayError) as exc:
        asyncio.run(gateway.create_charge(10))
    assert "não configurado" in exc.value.message


def test_mensajes_de_error_de_red():
    request = httpx.Request("GET", "https://pix.test")

    assert describe_error(httpx.ConnectTimeout("x", request=request)) == NETWORK_ERROR_MESSAGES["ConnectTimeout"]
    assert describe_error(httpx.ReadTimeout("x", request=request)) == NETWORK_ERROR_MESSAGES["ReadTimeout"]
    assert describe_error(httpx.ConnectError("refused", request=request)) == NETWORK_ERROR_MESSAGES["ConnectError"]
    ssl_error = httpx.ConnectError("[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed", request=request)
    assert describe_error(ssl_error) == NETWORK_ERROR_MESSAGES["SSLError"]
    assert describe_error(ValueError("raro")).startswith("Erro de comunicação")
