"""Watch a docker swarm stack rollout until it converges."""

__version__ = "1.0.0"
