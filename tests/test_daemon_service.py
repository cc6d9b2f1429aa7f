import socket
import threading
import time

from service.daemon_service import DaemonClient


class FakeDaemon:
    """Line based server answering each command with the given codes."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.received = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(1)
        self.port = self.sock.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        conn, _ = self.sock.accept()
        with conn, conn.makefile("r", encoding="utf-8", newline="\n") as reader:
            self._answer(conn)
            while self.answers:
                line = reader.readline()
                if not line:
                    break
                self.received.append(line.strip())
                self._answer(conn)

    def _answer(self, conn):
        answer = self.answers.pop(0)
        if isinstance(answer, str):
            answer = answer.encode()
        conn.sendall(answer + b"\n")

    def close(self):
        self.thread.join(timeout=5)
        self.sock.close()


def test_successful_conversation():
    daemon = FakeDaemon(["250 OK welcome", "250 OK helo", "250 OK queued", "250 OK bye"])
    client = DaemonClient(port=daemon.port, version="1.5.3", timeout=2)

    assert client.send_request() is True
    daemon.close()
    assert daemon.received == ["helo 1.5.3", "execute backend command", "bye"]
    assert client.last_error is None


def test_unexpected_answer_fails():
    daemon = FakeDaemon(["250 OK welcome", "500 go away"])
    client = DaemonClient(port=daemon.port, timeout=2)

    assert client.send_request() is False
    daemon.close()
    assert "500 go away" in client.last_error


def test_connection_refused():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()

    client = DaemonClient(port=port, timeout=1)
    assert client.send_request() is False
    assert "Couldn't connect" in client.last_error


def test_from_config(app):
    app.config["DAEMON_PORT"] = 1234
    client = DaemonClient.from_config(app.config)
    assert client.port == 1234
    assert client.version == app.config["PANEL_VERSION"]


class SilentDaemon:
    """Accepts the connection and never answers."""

    def __init__(self):
        self.done = threading.Event()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(1)
        self.port = self.sock.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        conn, _ = self.sock.accept()
        with conn:
            self.done.wait(timeout=5)

    def close(self):
        self.done.set()
        self.thread.join(timeout=5)
        self.sock.close()


def test_undecodable_answer_does_not_raise():
    daemon = FakeDaemon([b"250 \xff\xfe welcome", "250 OK helo", "250 OK queued", "250 OK bye"])
    client = DaemonClient(port=daemon.port, timeout=2)

    assert client.send_request() is True
    daemon.close()


def test_garbage_answer_fails():
    daemon = FakeDaemon([b"\xff\xfe\xfd"])
    client = DaemonClient(port=daemon.port, timeout=2)

    assert client.send_request() is False
    daemon.close()
    assert "unexpected answer" in client.last_error


def test_silent_daemon_times_out():
    daemon = SilentDaemon()
    client = DaemonClient(port=daemon.port, timeout=0.5)

    started = time.monotonic()
    assert client.send_request() is False
    assert time.monotonic() - started < 3
    daemon.close()
    assert "conversation failed" in client.last_error
