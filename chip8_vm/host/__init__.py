"""Host-side link: packet framing and the serial host."""
