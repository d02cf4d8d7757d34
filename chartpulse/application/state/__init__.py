"""Estado en memoria de la aplicación."""
