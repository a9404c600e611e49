"""Network transports: the server TCP connection and Wake-on-LAN."""
