"""
Animation

Keyframe animation clips imported from glTF documents.
"""

from enum import Enum
from typing import Dict, List, Tuple

import numpy as np
from pyrr import Quaternion


class InterpolationType(Enum):
    """Animation interpolation types."""
    LINEAR = "LINEAR"
    STEP = "STEP"
    CUBICSPLINE = "CUBICSPLINE"

    @classmethod
    def parse(cls, value) -> "InterpolationType":
        try:
            return cls(value or "LINEAR")
        except ValueError:
            return cls.LINEAR


class AnimationTarget(Enum):
    """Animation target properties."""
    TRANSLATION = "translation"
    ROTATION = "rotation"
    SCALE = "scale"
    WEIGHTS = "weights"  # Morph target weights


class Keyframe:
    """Time and value of one sample of an animated property."""

    __slots__ = ("time", "value")

    def __init__(self, time: float, value):
        self.time = time
        self.value = value

    def __repr__(self):
        return f"Keyframe(t={self.time:.3f}, v={self.value})"


class AnimationChannel:
    """
    Keyframes driving one property of one node.

    Channels address their target by node name, so a clip can be
    replayed on any hierarchy with matching names.
    """

    def __init__(self, target_node_name: str, target_property: AnimationTarget,
                 interpolation: InterpolationType = InterpolationType.LINEAR):
        self.target_node_name = target_node_name
        self.target_property = target_property
        self.interpolation = interpolation
        self.keyframes: List[Keyframe] = []

    def add_keyframe(self, time: float, value):
        """Add a keyframe; keyframes must arrive in ascending time order."""
        if self.keyframes and time < self.keyframes[-1].time:
            raise ValueError(
                f"Keyframe at {time:.3f}s precedes previous keyframe at {self.keyframes[-1].time:.3f}s"
            )
        self.keyframes.append(Keyframe(time, value))

    @property
    def end_time(self) -> float:
        return self.keyframes[-1].time if self.keyframes else 0.0

    def sample(self, time: float):
        """
        Sample the channel at a given time.

        Times outside the keyframe range clamp to the first/last value.
        Cubic spline channels are sampled linearly.
        """
        if not self.keyframes:
            return None

        if time <= self.keyframes[0].time:
            return self.keyframes[0].value
        if time >= self.keyframes[-1].time:
            return self.keyframes[-1].value

        times = [kf.time for kf in self.keyframes]
        upper = int(np.searchsorted(times, time, side="right"))
        k0 = self.keyframes[upper - 1]
        k1 = self.keyframes[upper]

        if self.interpolation == InterpolationType.STEP:
            return k0.value

        t = (time - k0.time) / (k1.time - k0.time) if k1.time > k0.time else 0.0
        if self.target_property == AnimationTarget.ROTATION:
            return Quaternion.slerp(Quaternion(k0.value), Quaternion(k1.value), t)
        return np.asarray(k0.value) * (1.0 - t) + np.asarray(k1.value) * t

    def __repr__(self):
        return (f"AnimationChannel(node='{self.target_node_name}', "
                f"property={self.target_property.value}, keyframes={len(self.keyframes)})")


class Animation:
    """Named clip made of channels; duration is the latest keyframe time."""

    def __init__(self, name: str):
        self.name = name
        self.channels: List[AnimationChannel] = []
        self.duration: float = 0.0

    def add_channel(self, channel: AnimationChannel):
        self.channels.append(channel)
        self.duration = max(self.duration, channel.end_time)

    def sample_all(self, time: float) -> Dict[Tuple[str, AnimationTarget], object]:
        """
        Sample every channel at ``time``.

        Returns:
            Dictionary mapping (node_name, property) -> value
        """
        return {
            (channel.target_node_name, channel.target_property): channel.sample(time)
            for channel in self.channels
        }

    def __repr__(self):
        return f"Animation(name='{self.name}', duration={self.duration:.2f}s, channels={len(self.channels)})"
