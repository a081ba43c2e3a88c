import os
import re
import shutil
import logging
import subprocess
import tempfile
import uuid
from typing import List, Optional

from bridge.errors import EnumerationFailure, PrintDispatchError
from bridge.models import PrinterDescriptor
from bridge.printers.base import Dispatcher

logger = logging.getLogger("print_bridge.cups")

_DEFAULT_RE = re.compile(r"destination:\s*(\S+)")


class CupsDispatcher(Dispatcher):
    """Linux and macOS: lpstat to enumerate, `lp -o raw` to print."""

    def __init__(self, query_timeout: float = 5, send_timeout: Optional[float] = 30):
        self.query_timeout = query_timeout
        self.send_timeout = send_timeout

    def _lpstat(self, *args: str) -> str:
        try:
            out = subprocess.run(
                ["lpstat", *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.query_timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise EnumerationFailure(f"lpstat {' '.join(args)} failed: {e}")
        return out.stdout.decode(errors="ignore")

    def _names(self) -> List[str]:
        names = []
        for line in self._lpstat("-p").splitlines():
            # "printer EPSON_TM_T20 is idle.  enabled since ..."
            if line.startswith("printer "):
                names.append(line.split()[1])
        if names:
            return names
        # lpstat -p can be empty on some CUPS builds; "NAME accepting requests since ..."
        return [line.split()[0] for line in self._lpstat("-a").splitlines() if line.strip()]

    def _default(self) -> Optional[str]:
        m = _DEFAULT_RE.search(self._lpstat("-d"))
        return m.group(1) if m else None

    def list_printers(self) -> List[PrinterDescriptor]:
        try:
            names = self._names()
            default = self._default() if names else None
        except EnumerationFailure as e:
            logger.warning("Printer enumeration failed: %s", e)
            return []
        return [PrinterDescriptor(name=n, is_default=(n == default)) for n in names]

    def send(self, printer: str, data: bytes) -> None:
        if not shutil.which("lp"):
            raise PrintDispatchError("lp command not found; is CUPS installed?")

        # one file per request; concurrent jobs never share a name
        try:
            fd, path = tempfile.mkstemp(prefix=f"print-bridge-{uuid.uuid4().hex}-", suffix=".bin")
        except OSError as e:
            raise PrintDispatchError(f"Could not stage print job: {e}")
        try:
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
            except OSError as e:
                raise PrintDispatchError(f"Could not stage print job: {e}")
            try:
                proc = subprocess.run(
                    ["lp", "-d", printer, "-o", "raw", path],
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    timeout=self.send_timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                raise PrintDispatchError(f"lp timed out after {self.send_timeout}s")
            except OSError as e:
                raise PrintDispatchError(f"lp could not be started: {e}")
            if proc.returncode != 0:
                stderr = proc.stderr.decode(errors="ignore").strip()
                raise PrintDispatchError(stderr or f"lp exited with code {proc.returncode}")
            logger.debug("lp: %s", proc.stdout.decode(errors="ignore").strip())
        finally:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
