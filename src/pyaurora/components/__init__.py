"""Heat pump components exposed by the ABC controller."""
