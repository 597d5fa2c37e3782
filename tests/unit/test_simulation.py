"""
End-to-end tests of MovemasterRobotArm against the simulated drive unit.

Responses travel through the reader thread in 3-byte chunks, so framing,
response pairing and the error-check cycle run as they would on a serial line.
"""

import threading

import numpy as np
import pytest

from movemaster.extender import HorizontalExtender
from movemaster.protocol.types import Pose
from movemaster.transports.mock_serial_transport import HOME_POSITION


@pytest.mark.integration
class TestSimulatedArm:

    def test_initial_pose_is_home(self, sim_robot):
        assert sim_robot.pose == Pose(*HOME_POSITION)

    def test_move_and_read_back(self, sim_robot, mock_transport):
        assert sim_robot.move_to(10, 260, 380, -80, 5) is True
        assert np.allclose(mock_transport.state.position, [10, 260, 380, -80, 5])
        assert sim_robot.get_pose(force_update=True) == Pose(10, 260, 380, -80, 5)

    def test_interpolated_delta(self, sim_robot, mock_transport):
        assert sim_robot.move_delta(0, 0, -20, interpolate_points=10) is True
        assert mock_transport.commands("MS") == ["MS 1, 10, O"]
        assert sim_robot.get_pose(force_update=True) == Pose(0.0, 253.6, 469.2, -90.0, 0.0)

    def test_rejected_command_recovers(self, sim_robot, mock_transport):
        assert sim_robot.run_command("XX 1").success is False
        assert mock_transport.state.error_code == 0
        assert sim_robot.set_speed(7) is True
        assert mock_transport.state.speed == 7

    def test_injected_fault_fails_move(self, sim_robot, mock_transport):
        mock_transport.inject_error(5)
        assert sim_robot.move_to(10, 260, 380, -80, 5) is False
        assert sim_robot.pose == Pose(*HOME_POSITION)
        assert mock_transport.commands("RS") == ["RS"]

    def test_path(self, sim_robot, mock_transport):
        path = [Pose(0, 250, 400, -90, 0), Pose(10, 250, 400, -90, 0), Pose(20, 250, 400, -90, 0)]
        assert sim_robot.move_path(path) is True
        assert np.allclose(mock_transport.state.position, [20, 250, 400, -90, 0])
        # The pose model is only refreshed on request
        assert sim_robot.pose == Pose(*HOME_POSITION)
        assert sim_robot.get_pose(force_update=True) == Pose(20, 250, 400, -90, 0)

    def test_gripper(self, sim_robot, mock_transport):
        assert sim_robot.set_gripper_closed(True) is True
        assert mock_transport.state.gripper_closed is True
        assert sim_robot.set_gripper_closed(False) is True
        assert mock_transport.state.gripper_closed is False

    def test_extender(self, sim_robot, mock_transport):
        extender = HorizontalExtender(sim_robot, -90.0, 0.0, 100.0)
        assert extender.move_to(-20, 300, 350) is True
        assert np.allclose(mock_transport.state.position, [80, 300, 350, -90, 90])

    def test_concurrent_callers(self, sim_robot, mock_transport):
        results = []

        def worker(speed):
            results.append(sim_robot.set_speed(speed))

        threads = [threading.Thread(target=worker, args=(s,)) for s in range(1, 6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert results == [True] * 5
        written = mock_transport.written
        # Each command is directly followed by its error check
        for i in range(0, len(written), 2):
            assert written[i].startswith("SP ")
            assert written[i + 1] == "ER"
