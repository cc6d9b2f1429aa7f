# service/daemon_service.py
import logging
import socket

logger = logging.getLogger("daemon")

SUCCESS_CODE = 250


class DaemonClient:
    """
    Line protocol client for the provisioning daemon.

    The conversation is: welcome, ``helo <version>``, ``execute backend command``,
    ``bye``; every answer must start with code 250.
    """

    def __init__(self, host="127.0.0.1", port=9876, version="", timeout=5.0):
        self.host = host
        self.port = port
        self.version = version
        self.timeout = timeout
        self.last_error = None

    @classmethod
    def from_config(cls, config):
        return cls(
            host=config.get("DAEMON_HOST", "127.0.0.1"),
            port=config.get("DAEMON_PORT", 9876),
            version=config.get("PANEL_VERSION", ""),
            timeout=config.get("DAEMON_TIMEOUT", 5.0),
        )

    def send_request(self):
        """Wake the daemon up. Returns True on success, False otherwise."""
        self.last_error = None
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            return self._fail(f"Couldn't connect to the daemon at {self.host}:{self.port}: {e}")

        try:
            reader = sock.makefile("r", encoding="utf-8", errors="replace", newline="\n")
            try:
                ok = (
                    self._read_answer(reader)
                    and self._send_command(sock, f"helo {self.version}".rstrip())
                    and self._read_answer(reader)
                    and self._send_command(sock, "execute backend command")
                    and self._read_answer(reader)
                    and self._send_command(sock, "bye")
                    and self._read_answer(reader)
                )
            finally:
                reader.close()
        except (OSError, ValueError) as e:
            ok = self._fail(f"Daemon conversation failed: {e}")
        finally:
            sock.close()

        if ok:
            logger.info("Daemon request sent to %s:%s", self.host, self.port)
        return ok

    def _read_answer(self, reader):
        answer = reader.readline()
        if not answer:
            return self._fail("Unable to read answer from the daemon: connection closed")
        code = answer.split(" ", 1)[0].strip()
        if not code.isdigit() or int(code) != SUCCESS_CODE:
            return self._fail(f"Daemon returned an unexpected answer: {answer.strip()}")
        return True

    def _send_command(self, sock, command):
        sock.sendall(f"{command}\n".encode("utf-8"))
        return True

    def _fail(self, message):
        self.last_error = message
        logger.error(message)
        return False
