from unittest.mock import patch

from portzap import container_detection
from portzap.container_detection import describe_container, detect_container, namespace_id


def _namespaces(table):
    """Fake /proc/PID/ns links keyed by (pid, type)."""

    def readlink(path):
        _, _, pid, _, ns_type = path.split("/")
        try:
            return f"{ns_type}:{table[(int(pid), ns_type)]}"
        except KeyError:
            raise FileNotFoundError(path) from None

    return readlink


class TestDetectContainer:
    """Tests for detect_container."""

    def test_cgroup_indicator(self):
        with patch.object(container_detection, "_read_text", return_value="0::/kubepods/burstable/pod1234\n"), patch(
            "portzap.container_detection.os.readlink", side_effect=_namespaces({(10, "net"): "[4026532000]"})
        ):
            info = detect_container(10)

        assert info.in_container
        assert info.indicator == "kubepods"
        assert info.namespaces == {"net": "[4026532000]"}

    def test_separate_mount_namespace(self):
        """A mount namespace differing from PID 1 counts as containerised."""
        table = {(10, "mnt"): "[4026532100]", (1, "mnt"): "[4026531840]"}
        with patch.object(container_detection, "_read_text", return_value="0::/user.slice\n"), patch(
            "portzap.container_detection.os.readlink", side_effect=_namespaces(table)
        ):
            info = detect_container(10)

        assert info.indicator == "mount namespace"

    def test_host_process(self):
        table = {(10, "mnt"): "[4026531840]", (1, "mnt"): "[4026531840]"}
        with patch.object(container_detection, "_read_text", return_value="0::/user.slice\n"), patch(
            "portzap.container_detection.os.readlink", side_effect=_namespaces(table)
        ):
            assert not detect_container(10).in_container
            assert describe_container(10) == ""

    def test_invalid_pid(self):
        assert not detect_container(0).in_container


def test_namespace_id_unreadable():
    with patch("portzap.container_detection.os.readlink", side_effect=PermissionError("denied")):
        assert namespace_id(10, "mnt") == ""


def test_describe_container():
    with patch.object(container_detection, "_read_text", return_value="12:devices:/docker/abc\n"), patch(
        "portzap.container_detection.os.readlink", side_effect=FileNotFoundError("gone")
    ):
        assert describe_container(10) == "PID 10 appears to run inside a container (docker)"
