"""
Gate barrier notifications over MQTT.
"""

import logging
import ssl
from typing import Optional

from aiomqtt import Client

from parking_tracker.config import Settings

logger = logging.getLogger(__name__)


class GateNotifier:
    """Publishes "open" to the entry/exit barrier topics after a recorded movement."""

    def __init__(
        self,
        host: Optional[str],
        port: int = 1883,
        tls_port: int = 8883,
        tls_enabled: bool = False,
        username: Optional[str] = None,
        password: Optional[str] = None,
        entry_topic: str = "parking/gate/entry",
        exit_topic: str = "parking/gate/exit",
        ca_cert: Optional[str] = None,
        client_cert: Optional[str] = None,
        client_key: Optional[str] = None
    ):
        self.host = host
        self.port = port
        self.tls_port = tls_port
        self.tls_enabled = tls_enabled
        self.username = username
        self.password = password
        self.entry_topic = entry_topic
        self.exit_topic = exit_topic
        self.ca_cert = ca_cert
        self.client_cert = client_cert
        self.client_key = client_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "GateNotifier":
        return cls(
            host=settings.mqtt_host,
            port=settings.mqtt_port,
            tls_port=settings.mqtt_tls_port,
            tls_enabled=settings.mqtt_tls_enabled,
            username=settings.mqtt_username,
            password=settings.mqtt_password,
            entry_topic=settings.mqtt_entry_topic,
            exit_topic=settings.mqtt_exit_topic,
            ca_cert=settings.mqtt_ca_cert,
            client_cert=settings.mqtt_client_cert,
            client_key=settings.mqtt_client_key
        )

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    async def open_entry(self) -> bool:
        return await self.publish(self.entry_topic, "open")

    async def open_exit(self) -> bool:
        return await self.publish(self.exit_topic, "open")

    def _tls_context(self) -> Optional[ssl.SSLContext]:
        if not self.tls_enabled:
            return None

        logger.info("TLS is enabled. Setting up SSL context.")
        tls_context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        tls_context.load_verify_locations(cafile=self.ca_cert)
        tls_context.load_cert_chain(certfile=self.client_cert, keyfile=self.client_key)
        return tls_context

    async def publish(self, topic: str, message: str) -> bool:
        """Publish once; failures are logged, never raised, since the movement is already recorded."""
        if not self.enabled:
            logger.debug(f"Gate notifications disabled; skipping '{message}' on '{topic}'")
            return False

        try:
            tls_context = self._tls_context()
            port = self.tls_port if self.tls_enabled else self.port
            logger.info(f"Connecting to MQTT broker at {self.host}:{port}")

            async with Client(
                hostname=self.host,
                port=port,
                username=self.username,
                password=self.password,
                tls_context=tls_context
            ) as client:
                logger.info(f"Publishing message '{message}' to topic '{topic}'")
                await client.publish(topic, message.encode())
                logger.info(f"Successfully published '{message}' to '{topic}'")
            return True
        except Exception as e:
            logger.error(f"MQTT publish failed: {e}")
            return False
