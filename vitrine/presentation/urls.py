"""
Define as rotas de API REST de checkout, pagamentos e pedidos.
"""
from django.urls import path

from . import views


urlpatterns = [
    # ====================================================================
    # 1. ROTAS DE CHECKOUT (COMPRADOR)
    # ====================================================================
    path('api/pagamentos/checkout/', views.CheckoutAPIView.as_view(), name='api_checkout'),
    path('api/pagamentos/transacoes/<str:id_transacao>/', views.ConsultarTransacaoAPIView.as_view(),
         name='api_consultar_transacao'),
    path('api/pagamentos/intencoes/<str:referencia>/tempo-restante/', views.TempoRestanteAPIView.as_view(),
         name='api_tempo_restante'),
    path('api/pagamentos/intencoes/<str:referencia>/pedido/', views.PedidoPorReferenciaAPIView.as_view(),
         name='api_pedido_por_referencia'),

    # ====================================================================
    # 2. ROTAS PÚBLICAS
    # ====================================================================
    path('api/pagamentos/configuracao/', views.ConfiguracaoPagamentosAPIView.as_view(),
         name='api_configuracao_pagamentos'),
    path('api/pagamentos/pse/bancos/', views.BancosPSEAPIView.as_view(), name='api_bancos_pse'),

    # Webhook da Wompi (Rota externa, não requer autenticação)
    path('api/pagamentos/webhook/', views.WebhookWompiView.as_view(), name='webhook_wompi'),

    # ====================================================================
    # 3. ROTAS ADMINISTRATIVAS
    # ====================================================================
    path('api/pedidos/<int:pedido_id>/cancelar/', views.CancelarPedidoAPIView.as_view(),
         name='api_cancelar_pedido'),
]
