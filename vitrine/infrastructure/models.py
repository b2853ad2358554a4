# Define os modelos do banco de dados para a camada de infraestrutura (autenticação e endereços).

from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.conf import settings

# ====================================================================
# GERENCIADOR DE USUÁRIOS PERSONALIZADO (Para usar email como login)
# ====================================================================

class CustomUserManager(BaseUserManager):
    """
    Gerenciador de modelos de usuário onde o email é o identificador único
    para autenticação, em vez dos nomes de usuário.
    """
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('O e-mail deve ser definido')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


# ====================================================================
# MODELO DE USUÁRIO
# ====================================================================

class Usuario(AbstractUser):
    """
    Modelo de Usuário Personalizado que utiliza o campo 'email' como identificador
    principal para login. Guarda os dados de contato e documento que o
    checkout hospedado exige do comprador.
    """
    TIPO_DOCUMENTO_CHOICES = [
        ('CC', 'Cédula de Cidadania'),
        ('CE', 'Cédula de Estrangeiro'),
        ('NIT', 'NIT'),
        ('PP', 'Passaporte'),
        ('TI', 'Tarjeta de Identidad'),
    ]

    username = None
    email = models.EmailField('Endereço de E-mail', unique=True)

    telefone = models.CharField(max_length=20, blank=True, null=True)
    prefixo_telefone = models.CharField(max_length=5, blank=True, default='+57')
    tipo_documento = models.CharField(max_length=5, choices=TIPO_DOCUMENTO_CHOICES, blank=True, null=True)
    numero_documento = models.CharField(max_length=20, blank=True, null=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    objects = CustomUserManager()

    class Meta:
        verbose_name = 'Usuário'
        verbose_name_plural = 'Usuários'
        db_table = 'infra_usuario'

    def __str__(self):
        return self.email


class Endereco(models.Model):
    """
    Endereço de entrega do usuário. Os campos seguem o bloco de envio
    aceito pelo checkout hospedado.
    """
    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='enderecos')
    apelido = models.CharField(max_length=50, help_text="Ex: Casa, Trabalho")
    nome_destinatario = models.CharField(max_length=150, blank=True, verbose_name="Destinatário")
    telefone = models.CharField(max_length=20, blank=True, verbose_name="Telefone de Contato")
    endereco = models.CharField(max_length=255, verbose_name="Endereço")
    complemento = models.CharField(max_length=100, blank=True, null=True, verbose_name="Complemento")
    cidade = models.CharField(max_length=100, verbose_name="Cidade")
    departamento = models.CharField(max_length=100, verbose_name="Departamento")
    pais = models.CharField(max_length=2, default='CO', verbose_name="País (ISO)")
    codigo_postal = models.CharField(max_length=10, blank=True, null=True, verbose_name="Código Postal")
    is_principal = models.BooleanField(default=False, verbose_name="Endereço Principal")
    ativo = models.BooleanField(default=True)

    class Meta:
        verbose_name = 'Endereço do Usuário'
        verbose_name_plural = 'Endereços do Usuário'
        db_table = 'usuario_endereco'
        ordering = ['-is_principal', 'apelido']
        unique_together = ('usuario', 'apelido')

    def __str__(self):
        return f"{self.usuario} - {self.apelido}"
