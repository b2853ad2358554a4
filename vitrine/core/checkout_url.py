# vitrine/core/checkout_url.py
"""
Construtor da URL do checkout hospedado (Web Checkout).

Função pura: recebe a intenção, os dados resolvidos do comprador e do envio
e o total em centavos, valida tudo e devolve a URL pronta para redirecionar.
Nunca altera estado.
"""
import ipaddress
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import urlencode, urlparse

from vitrine.core.assinatura import assinar
from vitrine.core.entities import IntencaoCheckout, SnapshotComprador, SnapshotEnvio
from vitrine.core.exceptions import ConfiguracaoInvalidaError, DadosInvalidosError

URL_CHECKOUT_PADRAO = 'https://checkout.wompi.co/p/'
VALOR_MINIMO_CENTAVOS = 100000
TAMANHO_MAXIMO_REFERENCIA = 40
PADRAO_REFERENCIA = re.compile(r'^[A-Za-z0-9_-]+$')


@dataclass
class ConfiguracaoCheckout:
    """Parâmetros do provedor necessários para montar a URL."""
    chave_publica: str
    segredo_integridade: str
    moeda: str = 'COP'
    url_base: str = URL_CHECKOUT_PADRAO
    url_redirecionamento: Optional[str] = None
    valor_minimo_centavos: int = VALOR_MINIMO_CENTAVOS
    incluir_expiracao: bool = True


def gerar_referencia() -> str:
    """Gera a referência de pagamento: PED-<8 hex>-<epoch em ms>."""
    return f"PED-{uuid.uuid4().hex[:8].upper()}-{int(time.time() * 1000)}"


def formatar_expiracao(momento: datetime) -> str:
    """Formato ISO-8601 em UTC com milissegundos, ex.: 2024-05-01T12:00:00.000Z."""
    if momento.tzinfo is None:
        momento = momento.replace(tzinfo=timezone.utc)
    momento = momento.astimezone(timezone.utc)
    return momento.strftime('%Y-%m-%dT%H:%M:%S.') + f"{momento.microsecond // 1000:03d}Z"


def validar_referencia(referencia: str):
    if not referencia:
        raise DadosInvalidosError("A referência de pagamento é obrigatória.")
    if len(referencia) > TAMANHO_MAXIMO_REFERENCIA:
        raise DadosInvalidosError(
            f"A referência excede {TAMANHO_MAXIMO_REFERENCIA} caracteres: {referencia}."
        )
    if not PADRAO_REFERENCIA.match(referencia):
        raise DadosInvalidosError(f"A referência contém caracteres não permitidos: {referencia}.")


def validar_url_externa(url: str):
    """
    Rejeita URLs de retorno que o provedor não consegue alcançar
    (loopback, redes privadas, link-local, .local).
    """
    partes = urlparse(url)
    if partes.scheme not in ('http', 'https') or not partes.hostname:
        raise ConfiguracaoInvalidaError(f"URL de redirecionamento inválida: {url}.")

    host = partes.hostname.lower()
    if host == 'localhost' or host.endswith('.localhost') or host.endswith('.local'):
        raise ConfiguracaoInvalidaError(f"URL de redirecionamento aponta para endereço local: {url}.")

    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return
    if ip.is_loopback or ip.is_private or ip.is_link_local or ip.is_unspecified or ip.is_reserved:
        raise ConfiguracaoInvalidaError(f"URL de redirecionamento aponta para endereço privado: {url}.")


def _somente_digitos(valor: Optional[str]) -> Optional[str]:
    if not valor:
        return None
    digitos = re.sub(r'\D', '', valor)
    return digitos or None


def _prefixo_telefone(valor: Optional[str]) -> Optional[str]:
    digitos = _somente_digitos(valor)
    return f"+{digitos}" if digitos else None


def _parametros_comprador(comprador: SnapshotComprador) -> List[Tuple[str, str]]:
    params = []
    if comprador.email:
        params.append(('customer-data:email', comprador.email))
    if comprador.nome_completo:
        params.append(('customer-data:full-name', comprador.nome_completo))

    telefone = _somente_digitos(comprador.telefone)
    prefixo = _prefixo_telefone(comprador.prefixo_telefone)
    # telefone só vai junto com o prefixo
    if telefone and prefixo:
        params.append(('customer-data:phone-number', telefone))
        params.append(('customer-data:phone-number-prefix', prefixo))

    if comprador.numero_documento and comprador.tipo_documento:
        params.append(('customer-data:legal-id', comprador.numero_documento))
        params.append(('customer-data:legal-id-type', comprador.tipo_documento))
    return params


def _parametros_envio(envio: Optional[SnapshotEnvio]) -> List[Tuple[str, str]]:
    """Bloco de envio completo ou nada: dados parciais são descartados."""
    if envio is None:
        return []
    telefone = _somente_digitos(envio.telefone)
    if not (envio.endereco and envio.pais and envio.cidade and telefone and envio.departamento):
        return []

    params = [
        ('shipping-address:address-line-1', envio.endereco),
        ('shipping-address:country', envio.pais),
        ('shipping-address:city', envio.cidade),
        ('shipping-address:phone-number', telefone),
        ('shipping-address:region', envio.departamento),
    ]
    if envio.nome_destinatario:
        params.append(('shipping-address:name', envio.nome_destinatario))
    if envio.codigo_postal:
        params.append(('shipping-address:postal-code', envio.codigo_postal))
    if envio.complemento:
        params.append(('shipping-address:address-line-2', envio.complemento))
    return params


def construir_url_checkout(
    intencao: IntencaoCheckout,
    comprador: SnapshotComprador,
    envio: Optional[SnapshotEnvio],
    valor_centavos: int,
    config: ConfiguracaoCheckout
) -> str:
    """Monta a URL assinada do checkout hospedado para a intenção informada."""
    if isinstance(valor_centavos, bool) or not isinstance(valor_centavos, int):
        raise DadosInvalidosError(f"O total deve ser um inteiro em centavos, recebido {valor_centavos!r}.")
    if valor_centavos < config.valor_minimo_centavos:
        raise DadosInvalidosError(
            f"O total ({valor_centavos}) é inferior ao mínimo aceito pelo provedor "
            f"({config.valor_minimo_centavos} centavos)."
        )
    validar_referencia(intencao.referencia)

    if not config.chave_publica:
        raise ConfiguracaoInvalidaError("Chave pública do provedor não configurada.")
    if config.url_redirecionamento:
        validar_url_externa(config.url_redirecionamento)

    expiracao = formatar_expiracao(intencao.expira_em) if (config.incluir_expiracao and intencao.expira_em) else None
    assinatura = assinar(
        intencao.referencia,
        valor_centavos,
        config.moeda,
        config.segredo_integridade,
        expiracao=expiracao,
    )

    params = [
        ('public-key', config.chave_publica),
        ('currency', config.moeda),
        ('amount-in-cents', str(valor_centavos)),
        ('reference', intencao.referencia),
        ('signature:integrity', assinatura),
    ]
    if config.url_redirecionamento:
        params.append(('redirect-url', config.url_redirecionamento))
    if expiracao:
        params.append(('expiration-time', expiracao))
    params.extend(_parametros_comprador(comprador))
    params.extend(_parametros_envio(envio))

    separador = '&' if '?' in config.url_base else '?'
    return f"{config.url_base}{separador}{urlencode(params, safe=':')}"
