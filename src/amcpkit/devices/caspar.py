from dataclasses import dataclass
from typing import Optional
import logging
import xml.etree.ElementTree as ET

from .amcp import AmcpClient
from .codec import AmcpResponse
from .errors import AmcpError, ProtocolError

log = logging.getLogger(__name__)


@dataclass
class SystemInfo:
    version: Optional[str] = None
    channels: int = 0


@dataclass
class SystemVersions:
    """Combined status snapshot; fields stay None when the source is unavailable."""
    connected: bool = False
    host: Optional[str] = None
    port: Optional[int] = None
    server_version: Optional[str] = None


class CasparServer:
    """Typed query helpers on top of an AmcpClient."""

    def __init__(self, client: AmcpClient):
        self.client = client

    def _query(self, command: str) -> AmcpResponse:
        response = self.client.send(command)
        if not response.is_success:
            raise ProtocolError(f"{command} command failed: {response.code} {response.message}")
        return response

    # ---------- version / info ----------
    def version(self, component: Optional[str] = None) -> str:
        """Server version, or the version of `component` (e.g. 'SERVER', 'FLASH')."""
        response = self._query(f"VERSION {component}" if component else "VERSION")
        return response.data if response.data is not None else response.message

    def info_system(self) -> str:
        return self._query("INFO SYSTEM").data or ""

    def info_channel(self, channel: int) -> str:
        return self._query(f"INFO {channel}").data or ""

    def info_template(self, channel: int, layer: int) -> str:
        return self._query(f"INFO {channel}-{layer}").data or ""

    def info_paths(self) -> str:
        return self._query("INFO PATHS").data or ""

    def info_config(self) -> str:
        return self._query("INFO CONFIG").data or ""

    # ---------- control ----------
    def ping(self) -> bool:
        """Round-trip an innocuous command. Transport errors propagate."""
        return self.client.send("VERSION").is_success

    def restart(self) -> None:
        self._query("RESTART")


def parse_version_response(data: str) -> Optional[str]:
    """First line of a VERSION payload, stripped."""
    for line in data.strip().splitlines():
        if line.strip():
            return line.strip()
    return None


def parse_system_info(xml: str) -> SystemInfo:
    """Pull version and channel count out of an INFO SYSTEM XML payload."""
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        log.debug("INFO SYSTEM payload is not valid XML: %s", e)
        return SystemInfo()

    def text(tag: str) -> Optional[str]:
        node = root if root.tag == tag else root.find(f".//{tag}")
        if node is None or node.text is None:
            return None
        return node.text.strip()

    channels = text("channels")
    if channels and channels.isdigit():
        count = int(channels)
    else:
        # newer servers list <channels><channel>..</channel></channels>
        count = len(root.findall(".//channels/channel"))
    return SystemInfo(version=text("version"), channels=count)


def system_versions(client: AmcpClient) -> SystemVersions:
    """
    Status probe for display: never raises. The server version is only
    filled in when the client is connected and VERSION succeeds.
    """
    info = client.connection_info()
    out = SystemVersions(connected=info is not None)
    if info is None:
        return out
    out.host, out.port = info
    try:
        out.server_version = parse_version_response(CasparServer(client).version())
    except AmcpError as e:
        log.warning("Could not query server version: %s", e)
    return out
