"""Serial port stand-in that behaves like a BC125AT on the other end."""

import serial

NO_REPLY = object()


class FakeScannerPort:
    """
    Implements the parts of the pyserial API used by SerialLink and answers
    each CR-terminated command the way the scanner firmware does.

    `replies` maps an exact command to a canned reply: a string, NO_REPLY to
    stay silent, or an exception instance to raise from write().
    """

    def __init__(self, model="BC125AT", version="Version 1.06.06"):
        self.port = "fake://bc125at"
        self.is_open = True
        self.model = model
        self.version = version
        self.program_mode = False
        self.memory = {}
        self.replies = {}
        self.commands = []
        self.written = bytearray()
        self.close_count = 0
        self._rx = bytearray()
        self._tx = bytearray()

    # --- pyserial API ---

    @property
    def in_waiting(self):
        return len(self._rx)

    def write(self, data):
        if not self.is_open:
            raise serial.SerialException("Port is closed")
        self.written.extend(data)
        self._tx.extend(data)
        while b"\r" in self._tx:
            raw, _, rest = bytes(self._tx).partition(b"\r")
            self._tx = bytearray(rest)
            command = raw.decode("ascii")
            self.commands.append(command)
            reply = self.replies.get(command)
            if reply is None:
                reply = self.respond(command)
            if isinstance(reply, Exception):
                raise reply
            if reply is not NO_REPLY:
                self._rx.extend(reply.encode("ascii") + b"\r")
        return len(data)

    def flush(self):
        pass

    def read(self, size=1):
        data = bytes(self._rx[:size])
        del self._rx[:size]
        return data

    def reset_input_buffer(self):
        self._rx.clear()

    def reset_output_buffer(self):
        self._tx.clear()

    def close(self):
        self.is_open = False
        self.close_count += 1

    # --- scanner behaviour ---

    def feed(self, data):
        """Queue raw bytes as if the scanner had sent them unprompted."""
        self._rx.extend(data)

    def store(self, index, name="", freq="0", mod="AUTO", tone="0",
              delay="0", lockout="0", priority="0"):
        self.memory[index] = ",".join(
            ["CIN", str(index), name, freq, mod, tone, delay, lockout,
             priority]
        )

    def respond(self, command):
        tag, _, args = command.partition(",")
        if tag == "PRG":
            self.program_mode = True
            return "PRG,OK"
        if tag == "EPG":
            self.program_mode = False
            return "EPG,OK"
        if tag == "MDL":
            return f"MDL,{self.model}"
        if tag == "VER":
            return f"VER,{self.version}"
        if not self.program_mode:
            return "ERR"
        if tag == "CIN":
            fields = args.split(",")
            index = int(fields[0])
            if len(fields) == 1:
                return self.memory.get(
                    index, f"CIN,{index},,0,AUTO,0,0,0,0"
                )
            self.memory[index] = command
            return "CIN,OK"
        if tag == "DCH":
            self.memory.pop(int(args), None)
            return "DCH,OK"
        return "ERR"
