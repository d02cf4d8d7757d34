"""Domain events y comandos."""
