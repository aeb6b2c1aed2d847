from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Marketplace account; a client books places, a host owns them."""

    CLIENT = "client"
    HOST = "host"
    AGENT = "agent"
    ROLES = [
        (CLIENT, "Client"),
        (HOST, "Host"),
        (AGENT, "Agent"),
    ]

    display_name = models.CharField(max_length=120, blank=True)
    phone_number = models.CharField(max_length=30, blank=True)
    role = models.CharField(max_length=10, choices=ROLES, default=CLIENT)

    @property
    def is_client(self) -> bool:
        return self.role == self.CLIENT

    @property
    def is_host(self) -> bool:
        return self.role == self.HOST

    @property
    def is_agent(self) -> bool:
        return self.role == self.AGENT
