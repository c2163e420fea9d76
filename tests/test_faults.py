import pytest

from lspkit import faults
from lspkit.message import MsgType, new_ack, new_cack, new_connect, new_data


@pytest.fixture(autouse=True)
def clean_state():
    yield
    faults.reset_drop_percent()
    faults.set_msg_shortening_percent(0)
    faults.set_msg_lengthening_percent(0)
    faults.set_delay_message_percent(0)
    faults.set_msg_corrupted(False)
    faults.enable_debug_logs(False)
    faults.stop_middlebox()
    faults.stop_sniff()


def test_read_drop_sets_both_sides():
    faults.set_read_drop_percent(30)
    assert faults._read_drop_percent(True) == 30
    assert faults._read_drop_percent(False) == 30


def test_write_drop_sets_both_sides():
    faults.set_write_drop_percent(20)
    assert faults._write_drop_percent(True) == 20
    assert faults._write_drop_percent(False) == 20


def test_client_and_server_rates_are_separate():
    faults.set_client_write_drop_percent(100)
    faults.set_server_write_drop_percent(0)
    assert faults._write_drop_percent(False) == 100
    assert faults._write_drop_percent(True) == 0


@pytest.mark.parametrize("bad", [-1, 101])
def test_out_of_range_drop_is_ignored(bad):
    faults.set_server_read_drop_percent(40)
    faults.set_server_read_drop_percent(bad)
    assert faults._read_drop_percent(True) == 40


def test_reset_drop_percent():
    faults.set_read_drop_percent(50)
    faults.set_write_drop_percent(60)
    faults.reset_drop_percent()
    assert faults._read_drop_percent(True) == 0
    assert faults._read_drop_percent(False) == 0
    assert faults._write_drop_percent(True) == 0
    assert faults._write_drop_percent(False) == 0


def test_resize_and_delay_rates():
    faults.set_msg_shortening_percent(100)
    faults.set_msg_lengthening_percent(50)
    faults.set_delay_message_percent(25)
    assert faults._shortening_percent() == 100
    assert faults._lengthening_percent() == 50
    assert faults._delay_percent() == 25


def test_resize_rate_above_hundred_is_ignored():
    faults.set_msg_lengthening_percent(10)
    faults.set_msg_lengthening_percent(150)
    assert faults._lengthening_percent() == 10


def test_negative_shortening_rate_always_fires():
    faults.set_msg_shortening_percent(-1)
    assert all(faults._sometimes(faults._shortening_percent()) for _ in range(200))


def test_sometimes_bounds():
    assert not any(faults._sometimes(0) for _ in range(200))
    assert all(faults._sometimes(100) for _ in range(200))


def test_corruption_flag():
    faults.set_msg_corrupted(True)
    assert faults._corruption_enabled() is True
    faults.set_msg_corrupted(False)
    assert faults._corruption_enabled() is False


def test_debug_logs_flag():
    faults.enable_debug_logs(True)
    assert faults._debug_logs_enabled() is True
    faults.enable_debug_logs(False)
    assert faults._debug_logs_enabled() is False


def test_sniff_counts_by_type():
    faults.start_sniff()
    data = new_data(1, 1, 1, b"x", 0)
    ack = new_ack(1, 1)
    faults._record(data, True)
    faults._record(data, False)
    faults._record(ack, True)
    faults._record(ack, False)
    faults._record(ack, False)
    faults._record(new_cack(1, 1), True)
    faults._record(new_connect(0), True)
    result = faults.stop_sniff()
    assert result.num_sent_data == 1
    assert result.num_dropped_data == 1
    assert result.num_sent_acks == 1
    assert result.num_dropped_acks == 2
    assert len(result.all_messages) == 7
    assert len(result.sent_messages) == 4
    assert all(msg in result.all_messages for msg in result.sent_messages)


def test_nothing_recorded_when_not_sniffing():
    faults.start_sniff()
    faults.stop_sniff()
    faults._record(new_data(1, 1, 1, b"x", 0), True)
    result = faults.stop_sniff()
    assert result.num_sent_data == 0
    assert result.all_messages == []


def test_start_sniff_clears_previous_results():
    faults.start_sniff()
    faults._record(new_ack(1, 1), True)
    faults.start_sniff()
    result = faults.stop_sniff()
    assert result.num_sent_acks == 0
    assert result.sent_messages == []


def test_stop_sniff_returns_a_copy():
    faults.start_sniff()
    faults._record(new_ack(1, 1), True)
    first = faults.stop_sniff()
    first.sent_messages.clear()
    assert len(faults.stop_sniff().sent_messages) == 1


class _AckDropper(faults.Middlebox):
    def run(self, msg):
        if msg.type == MsgType.ACK:
            return faults.MiddleboxOutput(send_msg=False)
        if msg.type == MsgType.DATA:
            msg.payload = b"changed"
            return faults.MiddleboxOutput(send_msg=True, modified_msg=True)
        return faults.MiddleboxOutput()


def test_no_middlebox_by_default():
    assert faults._run_middlebox(new_ack(1, 1)) is None


def test_base_middlebox_passes_through():
    msg = new_data(1, 1, 1, b"x", 0)
    output = faults.Middlebox().run(msg)
    assert output == faults.MiddleboxOutput(send_msg=True, modified_msg=False)
    assert msg.payload == b"x"


def test_installed_middlebox_sees_messages():
    faults.start_middlebox(_AckDropper())
    assert faults._run_middlebox(new_ack(1, 1)).send_msg is False
    data = new_data(1, 1, 1, b"x", 0)
    output = faults._run_middlebox(data)
    assert output.modified_msg is True
    assert data.payload == b"changed"


def test_stop_middlebox():
    faults.start_middlebox(_AckDropper())
    faults.stop_middlebox()
    assert faults._run_middlebox(new_ack(1, 1)) is None