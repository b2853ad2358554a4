"""
Configurações para o projeto Vitrine (checkout e liquidação de pagamentos).
"""

import os
from decouple import config, Csv
from pathlib import Path

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


# ====================================================================
# CONFIGURAÇÕES BÁSICAS
# ====================================================================

# A SECRET_KEY deve ser lida de uma variável de ambiente por segurança.
SECRET_KEY = config('SECRET_KEY', default='django-insecure-default-key-for-development')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = config('DEBUG', default=False, cast=bool)

ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,testserver', cast=Csv())

ADMINS = [('Operação', email) for email in config('ADMINS_EMAILS', default='', cast=Csv())]

# Modelo de usuário personalizado (login por e-mail).
AUTH_USER_MODEL = 'infrastructure.Usuario'


# ====================================================================
# APLICAÇÕES INSTALADAS
# ====================================================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Aplicações de Terceiros (Primeiro)
    'rest_framework',
    'drf_spectacular',
    'rest_framework_simplejwt',

    # Nossas Aplicações (Nessa ordem para referências de Models)
    'vitrine.core.apps.CoreConfig', # Entidades, Casos de Uso e comandos
    'vitrine.infrastructure.apps.InfrastructureConfig', # Usuário, Endereço e Repositórios
    'vitrine.catalog.apps.CatalogConfig', # Produtos e estoque
    'vitrine.carrinho.apps.CarrinhoConfig', # Carrinho de Compras
    'vitrine.pedidos.apps.PedidosConfig', # Livro-razão de Pedidos
    'vitrine.pagamentos.apps.PagamentosConfig', # Intenções de Checkout
    'vitrine.presentation.apps.PresentationConfig', # API REST e Admin
]


# ====================================================================
# MIDDLEWARE E TEMPLATES
# ====================================================================

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'vitrine.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'vitrine.wsgi.application'


# ====================================================================
# CONFIGURAÇÃO DO BANCO DE DADOS
# ====================================================================

# SQLite para desenvolvimento; PostgreSQL (psycopg2) em produção, onde os
# bloqueios SELECT ... FOR UPDATE da liquidação têm efeito.
DB_ENGINE = config('DB_ENGINE', default='django.db.backends.sqlite3')

if DB_ENGINE == 'django.db.backends.sqlite3':
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME', default='vitrine'),
            'USER': config('DB_USER', default='vitrine'),
            'PASSWORD': config('DB_PASSWORD', default=''),
            'HOST': config('DB_HOST', default='localhost'),
            'PORT': config('DB_PORT', default=5432, cast=int),
        }
    }


# ====================================================================
# AUTENTICAÇÃO E VALIDAÇÃO DE SENHA
# ====================================================================

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# ====================================================================
# INTERNACIONALIZAÇÃO
# ====================================================================

LANGUAGE_CODE = 'pt-br'

TIME_ZONE = config('TIME_ZONE', default='America/Bogota')

USE_I18N = True

USE_TZ = True


# ====================================================================
# ARQUIVOS ESTÁTICOS
# ====================================================================

STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# ====================================================================
# CONFIGURAÇÕES DO DJANGO REST FRAMEWORK (DRF) E DOCS (SPECTACULAR)
# ====================================================================

SPECTACULAR_SETTINGS = {
    'TITLE': 'API da Vitrine',
    'DESCRIPTION': 'Checkout hospedado, webhooks de pagamento e liquidação de pedidos.',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
}

REST_FRAMEWORK = {
    # JWT é a autenticação primária para API, SessionAuth para o Admin.
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ),
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}


# ====================================================================
# PROVEDOR DE PAGAMENTO (WOMPI)
# ====================================================================

WOMPI_AMBIENTE = config('WOMPI_AMBIENTE', default='sandbox')  # sandbox | production
WOMPI_CHAVE_PUBLICA = config('WOMPI_CHAVE_PUBLICA', default='')
WOMPI_CHAVE_PRIVADA = config('WOMPI_CHAVE_PRIVADA', default='')
# Segredos ausentes não impedem o boot; a assinatura falha ao ser usada.
WOMPI_SEGREDO_INTEGRIDADE = config('WOMPI_SEGREDO_INTEGRIDADE', default='')
WOMPI_SEGREDO_EVENTOS = config('WOMPI_SEGREDO_EVENTOS', default='')
WOMPI_URL_CHECKOUT = config('WOMPI_URL_CHECKOUT', default='https://checkout.wompi.co/p/')
WOMPI_TIMEOUT = config('WOMPI_TIMEOUT', default=10, cast=int)


# ====================================================================
# CHECKOUT E LIQUIDAÇÃO
# ====================================================================

PAGAMENTOS_URL_REDIRECIONAMENTO = config('PAGAMENTOS_URL_REDIRECIONAMENTO', default='')
PAGAMENTOS_MOEDA = config('PAGAMENTOS_MOEDA', default='COP')
PAGAMENTOS_VALOR_MINIMO_CENTAVOS = config('PAGAMENTOS_VALOR_MINIMO_CENTAVOS', default=100000, cast=int)

# Tempo (informativo) para concluir o pagamento, por método
PAGAMENTOS_EXPIRACAO_MINUTOS = {
    'default': config('PAGAMENTOS_EXPIRACAO_MINUTOS', default=15, cast=int),
    'PSE': config('PAGAMENTOS_EXPIRACAO_MINUTOS_PSE', default=30, cast=int),
    'BANCOLOMBIA_TRANSFER': config('PAGAMENTOS_EXPIRACAO_MINUTOS_BANCOLOMBIA_TRANSFER', default=30, cast=int),
}

# Só tem efeito com DEBUG ativo (ver vitrine.core.dependency_injection)
PAGAMENTOS_WEBHOOK_IGNORAR_ASSINATURA = config('PAGAMENTOS_WEBHOOK_IGNORAR_ASSINATURA', default=False, cast=bool)

PAGAMENTOS_RECONCILIACAO_JANELA_HORAS = config('PAGAMENTOS_RECONCILIACAO_JANELA_HORAS', default=24, cast=int)
PAGAMENTOS_RECONCILIACAO_LIMITE = config('PAGAMENTOS_RECONCILIACAO_LIMITE', default=200, cast=int)
PAGAMENTOS_RECONCILIACAO_INTERVALO = config('PAGAMENTOS_RECONCILIACAO_INTERVALO', default=300, cast=int)


# ====================================================================
# FRETE
# ====================================================================

FRETE_CUSTO_PADRAO = config('FRETE_CUSTO_PADRAO', default=18000, cast=int)
FRETE_GRATIS_A_PARTIR_DE = config('FRETE_GRATIS_A_PARTIR_DE', default=300000, cast=int)
FRETE_TABELA_CIDADES = {
    'CUCUTA': config('FRETE_CUSTO_CUCUTA', default=12000, cast=int),
    'VILLA DEL ROSARIO': config('FRETE_CUSTO_VILLA_DEL_ROSARIO', default=12000, cast=int),
    'LOS PATIOS': config('FRETE_CUSTO_LOS_PATIOS', default=12000, cast=int),
}


# ====================================================================
# CONFIGURAÇÕES DE SERVIÇOS EXTERNOS (E-mail e Logging)
# ====================================================================

# Configurações de E-mail
EMAIL_BACKEND = config('EMAIL_BACKEND', default='django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = config('EMAIL_HOST', default='localhost')
EMAIL_PORT = config('EMAIL_PORT', default=587, cast=int)
EMAIL_USE_TLS = config('EMAIL_USE_TLS', default=True, cast=bool)
EMAIL_HOST_USER = config('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = config('EMAIL_HOST_PASSWORD', default='')
DEFAULT_FROM_EMAIL = config('DEFAULT_FROM_EMAIL', default='noreply@vitrine.co')
SERVER_EMAIL = DEFAULT_FROM_EMAIL


# Configurações de Logging
LOG_FILE = Path(config('LOG_FILE', default=str(BASE_DIR / 'logs' / 'vitrine.log')))
LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'file': {
            'level': config('LOG_LEVEL', default='INFO'),
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': str(LOG_FILE),
            'maxBytes': 1024 * 1024 * 5,  # 5 MB
            'backupCount': 5,
            'formatter': 'verbose',
        },
        'console': {
            'level': 'WARNING',
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        # Canal de operadores: falhas de liquidação que exigem ação humana
        'mail_admins': {
            'level': 'ERROR',
            'class': 'django.utils.log.AdminEmailHandler',
        },
    },
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['file'],
            'level': 'WARNING',
            'propagate': True,
        },
        'vitrine': {
            'handlers': ['file', 'console'],
            'level': 'INFO',
            'propagate': False,
        },
        'vitrine.operador': {
            'handlers': ['file', 'console', 'mail_admins'],
            'level': 'ERROR',
            'propagate': False,
        },
    },
}
