"""
Cliente de la pasarela PIX (API Pix de Efí/Gerencianet).

La pasarela hace todo el protocolo PIX; aquí solo:
  - token OAuth2 (client_credentials), cacheado hasta que vence
  - crear cobro inmediato (/v2/cob)
  - QR code del cobro (/v2/loc/{id}/qrcode)
  - consultar estado (/v2/cob/{txid})

Token y creación de cobro se reintentan (RetryPolicy) solo ante errores de
red o 5xx; QR y estado no.
"""
import logging
import ssl
import time
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx
from fastapi import Request

from sabores.config import Settings
from sabores.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

# Renovar el token un poco antes de que venza
TOKEN_EXPIRY_MARGIN = 60


class PixGatewayError(Exception):
    """
    Error hablando con la pasarela. Solo los de red y los 5xx se marcan
    como reintentables; un 4xx va a fallar igual en el próximo intento.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: Optional[bool] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        if retryable is None:
            retryable = status_code is None or status_code >= 500
        self.retryable = retryable


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, PixGatewayError) and exc.retryable


# Errores de red -> mensaje para el usuario
NETWORK_ERROR_MESSAGES = {
    "ConnectTimeout": "Tempo de conexão com o gateway PIX esgotado",
    "ReadTimeout": "O gateway PIX demorou demais para responder",
    "WriteTimeout": "O gateway PIX demorou demais para receber a requisição",
    "PoolTimeout": "Muitas requisições simultâneas ao gateway PIX",
    "ConnectError": "Não foi possível conectar ao gateway PIX",
    "RemoteProtocolError": "O gateway PIX encerrou a conexão inesperadamente",
    "SSLError": "Falha na conexão segura (SSL) com o gateway PIX",
}


def describe_error(exc: Exception) -> str:
    """Traduce una excepción de red de httpx a un mensaje entendible."""
    seen = set()
    cause = exc
    while cause is not None and id(cause) not in seen:
        if isinstance(cause, ssl.SSLError):
            return NETWORK_ERROR_MESSAGES["SSLError"]
        seen.add(id(cause))
        cause = cause.__cause__ or cause.__context__
    if "ssl" in str(exc).lower() or "certificate" in str(exc).lower():
        return NETWORK_ERROR_MESSAGES["SSLError"]
    for cls in type(exc).__mro__:
        if cls.__name__ in NETWORK_ERROR_MESSAGES:
            return NETWORK_ERROR_MESSAGES[cls.__name__]
    return f"Erro de comunicação com o gateway PIX: {exc}"


class PixGateway:
    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_policy: Optional[RetryPolicy] = None,
        clock=time.monotonic,
    ):
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._clock = clock
        self._token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=3,
            base_delay=1.0,
            retry_on=(PixGatewayError,),
            should_retry=is_transient,
            name="gateway PIX",
        )

    # -----------------------------
    # Cliente HTTP
    # -----------------------------
    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: Dict[str, Any] = {
                "base_url": self.settings.pix_base_url,
                "timeout": self.settings.pix_timeout,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            else:
                # Algunos hostings no traen la cadena de certificados completa
                kwargs["verify"] = self.settings.pix_verify_ssl
                if self.settings.pix_cert_path:
                    kwargs["cert"] = self.settings.pix_cert_path
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_configured(self) -> None:
        if not self.settings.pix_configured:
            raise PixGatewayError("Gateway PIX não configurado (PIX_CLIENT_ID/PIX_CLIENT_SECRET)", retryable=False)

    async def _send(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._get_client().request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise PixGatewayError(describe_error(e)) from e

        if response.status_code == 401:
            # Token vencido o revocado: el próximo intento pide uno nuevo
            self._token = None
        if response.status_code >= 400:
            try:
                detail = response.json()
                detail = detail.get("mensagem") or detail.get("error_description") or detail
            except ValueError:
                detail = response.text
            raise PixGatewayError(
                f"Gateway PIX respondeu {response.status_code}: {detail}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise PixGatewayError("Resposta inválida do gateway PIX") from e

    # -----------------------------
    # Token OAuth2
    # -----------------------------
    async def _fetch_token(self) -> str:
        data = await self._send(
            "POST",
            "/oauth/token",
            json={"grant_type": "client_credentials"},
            auth=(self.settings.pix_client_id, self.settings.pix_client_secret),
        )
        token = data.get("access_token")
        if not token:
            raise PixGatewayError("Gateway PIX não retornou access_token", retryable=False)
        expires_in = float(data.get("expires_in", 3600))
        self._token = token
        self._token_expires_at = self._clock() + max(0.0, expires_in - TOKEN_EXPIRY_MARGIN)
        logger.info("🔑 Token PIX renovado")
        return token

    async def get_access_token(self) -> str:
        self._ensure_configured()
        if self._token and self._clock() < self._token_expires_at:
            return self._token
        return await self.retry_policy.run_async(self._fetch_token)

    async def _authorized(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        token = await self.get_access_token()
        headers = {"Authorization": f"Bearer {token}"}
        return await self._send(method, url, headers=headers, **kwargs)

    # -----------------------------
    # Operaciones
    # -----------------------------
    async def create_charge(self, total: Decimal, description: str = "", debtor_name: Optional[str] = None) -> Dict[str, Any]:
        """Crea el cobro inmediato. Devuelve {txid, loc_id, status, qr_code?}."""
        self._ensure_configured()
        body: Dict[str, Any] = {
            "calendario": {"expiracao": self.settings.pix_charge_expiration},
            "valor": {"original": f"{Decimal(total):.2f}"},
            "chave": self.settings.pix_key,
        }
        if description:
            body["solicitacaoPagador"] = description[:140]

        # El token ya trae sus propios reintentos; aquí solo se reintenta el POST
        headers = {"Authorization": f"Bearer {await self.get_access_token()}"}

        async def attempt():
            return await self._send("POST", "/v2/cob", json=body, headers=headers)

        data = await self.retry_policy.run_async(attempt)
        loc = data.get("loc") or {}
        txid = data.get("txid")
        if not txid or not loc.get("id"):
            raise PixGatewayError("Gateway PIX não retornou txid/location da cobrança", retryable=False)
        logger.info(f"💳 Cobrança PIX criada: txid={txid}")
        return {
            "txid": txid,
            "loc_id": str(loc["id"]),
            "status": data.get("status"),
            "qr_code": data.get("pixCopiaECola"),
        }

    async def generate_qrcode(self, loc_id: str) -> Dict[str, Any]:
        data = await self._authorized("GET", f"/v2/loc/{loc_id}/qrcode")
        return {
            "qr_code": data.get("qrcode"),
            "qr_code_image": data.get("imagemQrcode"),
        }

    async def get_charge_status(self, txid: str) -> str:
        data = await self._authorized("GET", f"/v2/cob/{txid}")
        status = data.get("status")
        if not status:
            raise PixGatewayError("Gateway PIX não retornou o status da cobrança")
        return status


def get_pix_gateway(request: Request) -> PixGateway:
    return request.app.state.pix_gateway
