"""Discrete-time PID controllers.

Control law per call:
    integral += error * dt
    derivative = (error - last_error) / dt
    output = Kp * error + Ki * integral + Kd * derivative

The first call after construction or ``reset`` has no elapsed interval: it
neither integrates nor differentiates, so its output is exactly Kp * error.
"""

import math


def wrap_angle(angle: float) -> float:
    """Wrap an angle in radians into the range (-pi, pi].

    Non-finite input is returned unchanged.
    """
    if not math.isfinite(angle):
        return angle
    wrapped = math.remainder(angle, 2 * math.pi)
    if wrapped <= -math.pi:
        wrapped += 2 * math.pi
    return wrapped


class PIDController:
    """Scalar discrete PID regulator.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
        value: Output of the most recent ``control`` call
    """

    def __init__(self, kp: float, ki: float, kd: float, time_step: float):
        self.kp = float(kp)
        self.ki = float(ki)
        self.kd = float(kd)
        self._time_step = float(time_step)
        self._inverse_time_step = 1.0 / self._time_step

        self._error_sum = 0.0
        self._last_error = 0.0
        self._first_run = True
        self.value = 0.0

    @classmethod
    def from_gains(cls, gains, time_step: float) -> "PIDController":
        """Create from a :class:`autonav.config.PIDGains`."""
        return cls(gains.kp, gains.ki, gains.kd, time_step)

    @property
    def time_step(self) -> float:
        return self._time_step

    @time_step.setter
    def time_step(self, value: float):
        self._time_step = float(value)
        self._inverse_time_step = 1.0 / self._time_step

    @property
    def integral(self) -> float:
        return self._error_sum

    @property
    def last_error(self) -> float:
        return self._last_error

    def _integrate(self, error: float, error_sum: float, time_step: float) -> float:
        return error_sum + error * time_step

    def control(self, error: float, time_step: float = None) -> float:
        """Regulate one error sample and return the controller output.

        Args:
            error: Current error (setpoint - measurement)
            time_step: Optional new time step; replaces the stored one

        Returns:
            float: Controller output
        """
        if time_step is not None and time_step != self._time_step:
            self.time_step = time_step

        if self._first_run:
            derivative = 0.0
            self._first_run = False
        else:
            derivative = (error - self._last_error) * self._inverse_time_step
            self._error_sum = self._integrate(error, self._error_sum, self._time_step)
        self._last_error = error

        self.value = self.kp * error + self.ki * self._error_sum + self.kd * derivative
        return self.value

    def reset(self):
        """Clear integral and derivative history."""
        self._error_sum = 0.0
        self._last_error = 0.0
        self._first_run = True

    def __repr__(self):
        return f"{type(self).__name__}(kp={self.kp}, ki={self.ki}, kd={self.kd}, dt={self._time_step:.4f})"


class AnglePIDController(PIDController):
    """PID controller for angles in radians.

    Errors are wrapped into (-pi, pi] before regulating so that headings
    either side of the +/-pi seam produce the short-way error.
    """

    def control(self, error: float, time_step: float = None) -> float:
        return super().control(wrap_angle(error), time_step)

    def control_angles(self, target: float, current: float, time_step: float = None) -> float:
        """Regulate the wrapped difference ``target - current``."""
        return self.control(target - current, time_step)
