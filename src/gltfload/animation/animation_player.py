"""
Animation Player

Component that plays animation clips on the node hierarchy it is attached to.
"""

from typing import Dict, Optional, Tuple

from pyrr import Matrix44, Quaternion, Vector3, matrix44

from ..core.scene import Component, SceneNode
from .animation import Animation, AnimationTarget


class AnimationPlayer(Component):
    """
    Controls playback of one clip.

    Manages:
    - Playback time, loop and speed
    - Play/pause/stop states
    - Writing sampled TRS values into the local transforms of target nodes
    """

    def __init__(self, clip: Animation, loop: bool = True):
        super().__init__()
        self.clip = clip
        self.loop = loop
        self.current_time = 0.0
        self.playback_speed = 1.0
        self.is_playing = False
        self._bind_pose: Dict[str, Tuple[SceneNode, Vector3, Quaternion, Vector3]] = {}

    @property
    def name(self) -> str:
        return self.clip.name

    def play(self, loop: Optional[bool] = None):
        """
        Start the clip from the beginning.

        Args:
            loop: Override the looping flag for this playback
        """
        if loop is not None:
            self.loop = loop
        self._capture_bind_pose()
        self.current_time = 0.0
        self.is_playing = True
        self._apply(0.0)

    def pause(self):
        self.is_playing = False

    def resume(self):
        self.is_playing = True

    def stop(self):
        """Stop playback and restore the bind pose."""
        self.is_playing = False
        self.current_time = 0.0
        for node, translation, rotation, scale in self._bind_pose.values():
            node.local_transform = _compose(translation, rotation, scale)

    def update(self, delta_time: float):
        """
        Advance playback.

        Args:
            delta_time: Time elapsed since last frame (seconds)
        """
        if not self.is_playing:
            return

        self.current_time += delta_time * self.playback_speed
        duration = self.clip.duration
        if self.current_time >= duration:
            if self.loop and duration > 0.0:
                self.current_time %= duration
            else:
                self.current_time = duration
                self.is_playing = False

        self._apply(self.current_time)

    def _capture_bind_pose(self):
        self._bind_pose.clear()
        if self.node is None:
            return
        targets = {channel.target_node_name for channel in self.clip.channels}
        for node in self.node.iter_descendants():
            if node.name in targets and node.name not in self._bind_pose:
                scale, rotation, translation = matrix44.decompose(node.local_transform)
                self._bind_pose[node.name] = (node, Vector3(translation), Quaternion(rotation), Vector3(scale))

    def _apply(self, time: float):
        sampled = self.clip.sample_all(time)
        for node_name, (node, translation, rotation, scale) in self._bind_pose.items():
            t = sampled.get((node_name, AnimationTarget.TRANSLATION))
            r = sampled.get((node_name, AnimationTarget.ROTATION))
            s = sampled.get((node_name, AnimationTarget.SCALE))
            node.local_transform = _compose(
                Vector3(t) if t is not None else translation,
                Quaternion(r) if r is not None else rotation,
                Vector3(s) if s is not None else scale,
            )

    def __repr__(self):
        state = "playing" if self.is_playing else "stopped"
        return f"AnimationPlayer(clip='{self.clip.name}', {state}, t={self.current_time:.2f})"


def _compose(translation, rotation, scale) -> Matrix44:
    # scale, then rotation, then translation (row-vector convention)
    matrix = Matrix44.from_scale(scale)
    matrix = matrix @ Matrix44.from_quaternion(rotation)
    matrix = matrix @ Matrix44.from_translation(translation)
    return Matrix44(matrix)
