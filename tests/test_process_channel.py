import sys

import pytest

from lc3spec.backends.process_channel import ProcessChannel
from lc3spec.sim.errors import SimulatorError

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="pexpect.spawn needs a pty")

ECHO = (
    "import sys\n"
    "print('ready')\n"
    "for line in sys.stdin:\n"
    "    line = line.strip()\n"
    "    if line == 'quit':\n"
    "        break\n"
    "    print('got ' + line)\n"
)


@pytest.fixture
def chan(tmp_path):
    ch = ProcessChannel(sys.executable, ["-u", "-c", ECHO], cwd=str(tmp_path))
    ch.start()
    yield ch
    ch.close()


def test_round_trip(chan):
    assert chan.read_line(timeout=10) == "ready"
    chan.send_line("4242")
    assert chan.read_line(timeout=10) == "got 4242"
    assert chan.is_alive()


def test_timeout_returns_none(chan):
    assert chan.read_line(timeout=10) == "ready"
    assert chan.read_line(timeout=0.1) is None


def test_eof_raises(chan):
    assert chan.read_line(timeout=10) == "ready"
    chan.send_line("quit")
    with pytest.raises(SimulatorError):
        chan.read_line(timeout=10)


def test_close_kills_child(chan):
    chan.close()
    assert not chan.is_alive()
    chan.close()
    with pytest.raises(SimulatorError):
        chan.send_line("x")


def test_missing_executable():
    ch = ProcessChannel("/nonexistent/lc3sim-binary")
    with pytest.raises(SimulatorError):
        ch.start()
