from buzzer.settings import Settings
from buzzer.store.room_repo import RoomRepo
from buzzer.transport.ws_manager import WSManager


class FakeWS:
    def __init__(self, fail: bool = False, fail_after: int = None):
        self.sent = []
        self.fail = fail
        # start failing once this many frames have gone out
        self.fail_after = fail_after
        self.closed = False

    async def send_text(self, text):
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            self.fail = True
        if self.fail:
            raise RuntimeError("socket is gone")
        self.sent.append(text)

    async def close(self, code=1000):
        self.closed = True


class FakeApp:
    def __init__(self, **settings):
        self.state = type(
            "State",
            (),
            {
                "repo": RoomRepo(),
                "wsman": WSManager(),
                "settings": Settings(**settings),
            },
        )()

    @property
    def repo(self):
        return self.state.repo

    @property
    def wsman(self):
        return self.state.wsman

    def connect(self, cid, ws=None):
        return self.state.wsman.add(cid, ws or FakeWS())
