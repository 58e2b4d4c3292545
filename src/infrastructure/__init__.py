"""Infrastructure Layer: adapters implementing domain ports."""
