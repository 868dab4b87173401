"""
Animation System

Keyframe clips and the player component that drives them.
"""

from .animation import Keyframe, AnimationChannel, Animation, AnimationTarget, InterpolationType
from .animation_player import AnimationPlayer

__all__ = [
    'Keyframe',
    'AnimationChannel',
    'Animation',
    'AnimationTarget',
    'InterpolationType',
    'AnimationPlayer',
]
