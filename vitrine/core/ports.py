# vitrine/core/ports.py
"""
Definição das Portas (Interfaces/Protocolos) da Arquitetura Limpa.

Estes protocolos definem o contrato que a camada de Infraestrutura (Repositorios, Gateways)
DEVE seguir para se conectar à camada Core (Casos de Uso).
"""

from typing import Protocol, List, Optional, Tuple, Callable, ContextManager
from abc import abstractmethod
from datetime import datetime, date
from decimal import Decimal

from vitrine.core.entities import (
    IntencaoCheckout, Pedido, Carrinho, ValidacaoCarrinho, SnapshotComprador,
    SnapshotEnvio, TransacaoPagamento, NotificacaoPedido
)


# ====================================================================
# 1. REPOSITÓRIOS (Portas de Persistência)
# ====================================================================

class IIntencaoCheckoutRepository(Protocol):
    """Protocolo para o armazenamento durável das intenções de checkout."""

    @abstractmethod
    def criar(self, intencao: IntencaoCheckout) -> IntencaoCheckout: ...

    @abstractmethod
    def buscar_por_id(self, intencao_id: str) -> Optional[IntencaoCheckout]: ...

    @abstractmethod
    def buscar_por_referencia(self, referencia: str) -> Optional[IntencaoCheckout]: ...

    @abstractmethod
    def buscar_por_transacao(self, id_transacao_provedor: str) -> Optional[IntencaoCheckout]: ...

    @abstractmethod
    def bloquear_aprovada(self, intencao_id: str) -> Optional[IntencaoCheckout]:
        """Bloqueia (SELECT ... FOR UPDATE) a intenção somente se estiver APPROVED."""
        ...

    @abstractmethod
    def atualizar_estado(
        self,
        intencao_id: str,
        novo_estado: str,
        id_transacao_provedor: Optional[str] = None
    ) -> Tuple[IntencaoCheckout, bool]:
        """
        Registra a transição de forma idempotente e monotônica.
        Retorna a intenção atualizada e se o estado efetivamente mudou.
        """
        ...

    @abstractmethod
    def registrar_falha_liquidacao(self, intencao_id: str) -> bool: ...

    @abstractmethod
    def listar_ids_pendentes(self, desde: datetime, limite: int) -> List[str]:
        """Ids das intenções PENDING criadas desde `desde`, das mais antigas para as mais novas."""
        ...


class ILedgerPedidos(Protocol):
    """Protocolo do livro-razão de pedidos: criação atômica e cancelamento."""

    @abstractmethod
    def bloquear_por_referencia(self, referencia: str) -> Optional[Pedido]: ...

    @abstractmethod
    def criar_a_partir_do_carrinho(self, intencao: IntencaoCheckout) -> Pedido:
        """
        Cria o pedido, baixa o estoque e desativa o carrinho. Deve ser chamado
        dentro de uma transação já aberta pelo chamador.
        """
        ...

    @abstractmethod
    def atualizar_estado(self, pedido_id: int, novo_estado: str) -> Pedido: ...

    @abstractmethod
    def gerar_numero_pedido(self, dia: Optional[date] = None) -> str: ...

    @abstractmethod
    def cancelar(self, pedido_id: int, motivo: Optional[str] = None) -> Tuple[Pedido, bool]: ...

    @abstractmethod
    def buscar_por_id(self, pedido_id: int) -> Optional[Pedido]: ...

    @abstractmethod
    def buscar_por_referencia(self, referencia: str) -> Optional[Pedido]: ...


class IUnidadeDeTrabalho(Protocol):
    """Fronteira transacional usada pelo coordenador de liquidação."""

    @abstractmethod
    def atomico(self) -> ContextManager: ...

    @abstractmethod
    def apos_commit(self, callback: Callable[[], None]): ...


# ====================================================================
# 2. SERVIÇOS COLABORADORES
# ====================================================================

class ICarrinhoService(Protocol):
    """Serviço de carrinho consumido na criação do checkout."""

    @abstractmethod
    def buscar_carrinho_ativo(self, usuario_id: int) -> Optional[Carrinho]: ...

    @abstractmethod
    def validar_para_checkout(self, carrinho: Carrinho) -> ValidacaoCarrinho: ...


class IPerfilCompradorService(Protocol):
    """Resolve os dados do comprador e do endereço de entrega."""

    @abstractmethod
    def dados_comprador(self, usuario_id: int) -> SnapshotComprador: ...

    @abstractmethod
    def endereco_envio(self, usuario_id: int, endereco_id: int) -> Optional[SnapshotEnvio]: ...


class ICalculadoraFrete(Protocol):
    """Tabela de custo de envio (função pura)."""

    @abstractmethod
    def custo(self, subtotal: Decimal, cidade: Optional[str] = None) -> Decimal: ...


# ====================================================================
# 3. GATEWAYS (Portas de Serviços Externos)
# ====================================================================

class IGatewayPagamento(Protocol):
    """Protocolo para consultas ativas ao provedor de pagamento."""

    @abstractmethod
    def consultar_transacao(self, id_transacao: str) -> TransacaoPagamento: ...

    @abstractmethod
    def consultar_por_referencia(self, referencia: str) -> Optional[TransacaoPagamento]: ...

    @abstractmethod
    def listar_bancos_pse(self) -> List[dict]: ...


class INotificador(Protocol):
    """Protocolo do serviço de notificações (push/e-mail). Fire-and-forget."""

    @abstractmethod
    def notificar_mudanca_estado(self, notificacao: NotificacaoPedido): ...
