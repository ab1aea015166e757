"""CPU: registers, decoder, ALU helpers, instruction handlers."""
