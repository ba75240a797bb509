"""Тесты reentrancy и сериализации операций VaultLedger.

Coverage:
- Получатель перевода повторно входит в withdraw: видит уменьшенный баланс
- Отказ внешнего перевода не откатывает завершённые reentrant операции
- Вложенный отказ перевода возвращает только вложенную операцию
- Сохранение средств: выплачено + на хранении == внесено
- Сумма незавершённого вывода занимает место под bank_cap
- Параллельные deposit/withdraw из многих потоков сохраняют инварианты
"""

import threading

import pytest

from src.core.domain.errors import LedgerErrorKind
from src.core.domain.events import LedgerEventType
from src.vault.invariants import check_invariants
from src.vault.ledger import VaultLedger
from src.vault.transfer import CallbackPaymentChannel, RecordingPaymentChannel


class ReentrantRecipient:
    """Получатель, пытающийся повторно вывести средства во время перевода."""

    def __init__(self, reentry_amount, max_depth=1, succeed=True):
        self.ledger = None
        self.reentry_amount = reentry_amount
        self.max_depth = max_depth
        self.succeed = succeed
        self.depth = 0
        self.inner_results = []
        self.balances_seen = []
        self.received = 0

    def __call__(self, recipient, amount):
        self.balances_seen.append(self.ledger.get_my_balance(recipient))
        if self.depth < self.max_depth:
            self.depth += 1
            self.inner_results.append(self.ledger.withdraw(recipient, self.reentry_amount))
        if self.succeed:
            self.received += amount
        return self.succeed


class ReentrantPayoutChannel:
    """Канал, получатель которого входит в ledger до выплаты.

    Каждый внешний перевод сначала вызывает reentry(ledger, recipient),
    затем либо отказывает (fail_outer), либо платит. Вложенные переводы
    всегда платят. Все выплаты проходят через RecordingPaymentChannel.
    """

    def __init__(self, reentry, fail_outer=False):
        self.ledger = None
        self.reentry = reentry
        self.fail_outer = fail_outer
        self.paid = RecordingPaymentChannel()
        self.inner_results = []
        self._depth = 0

    def transfer(self, recipient, amount):
        if self._depth == 0:
            self._depth += 1
            try:
                self.inner_results.append(self.reentry(self.ledger, recipient))
            finally:
                self._depth -= 1
            if self.fail_outer:
                return False
        return self.paid.transfer(recipient, amount)


def _ledger_with(channel, bank_cap=1_000, withdrawal_threshold=10):
    ledger = VaultLedger(
        bank_cap=bank_cap,
        withdrawal_threshold=withdrawal_threshold,
        payment_channel=channel,
    )
    channel.ledger = ledger
    return ledger


def _withdraw_again(amount):
    return lambda ledger, recipient: ledger.withdraw(recipient, amount)


@pytest.fixture
def attacker():
    return ReentrantRecipient(reentry_amount=10)


@pytest.fixture
def ledger(attacker):
    ledger = VaultLedger(
        bank_cap=1_000,
        withdrawal_threshold=10,
        payment_channel=CallbackPaymentChannel(attacker),
    )
    attacker.ledger = ledger
    return ledger


class TestReentrancy:
    def test_reentrant_withdraw_sees_decremented_balance(self, ledger, attacker):
        ledger.deposit("mallory", 10)

        result = ledger.withdraw("mallory", 10)

        assert result.success is True
        # Во время перевода баланс уже уменьшен
        assert attacker.balances_seen[0] == 0
        assert attacker.inner_results[0].error == LedgerErrorKind.INSUFFICIENT_BALANCE
        assert attacker.received == 10
        assert ledger.get_my_balance("mallory") == 0
        assert ledger.get_bank_stats().withdrawal_count == 1

    def test_reentrant_withdraw_within_balance_is_honoured(self, ledger, attacker):
        ledger.deposit("mallory", 20)

        result = ledger.withdraw("mallory", 10)

        assert result.success is True
        assert attacker.inner_results[0].success is True
        # Внешний результат отражает баланс после вложенного вывода
        assert result.balance_after == 0
        assert attacker.received == 20
        assert ledger.get_bank_stats().withdrawal_count == 2
        assert check_invariants(ledger.snapshot()).ok

    def test_outer_failure_keeps_paid_reentrant_withdrawal(self):
        channel = ReentrantPayoutChannel(_withdraw_again(10), fail_outer=True)
        ledger = _ledger_with(channel)
        ledger.deposit("mallory", 20)

        result = ledger.withdraw("mallory", 10)

        assert result.error == LedgerErrorKind.TRANSFER_FAILED
        assert channel.inner_results[0].success is True
        # Вложенный вывод выплачен и остаётся в силе; возвращён только внешний
        assert channel.paid.total_paid("mallory") == 10
        assert ledger.get_my_balance("mallory") == 10
        assert result.balance_after == 10
        assert channel.paid.total_paid("mallory") + ledger.get_my_balance("mallory") == 20

        stats = ledger.get_bank_stats()
        assert stats.withdrawal_count == 1
        assert stats.total_deposited == 10
        withdrawals = ledger.get_events(event_type=LedgerEventType.WITHDRAWAL_SUCCESSFUL)
        assert [(e.account, e.amount) for e in withdrawals] == [("mallory", 10)]
        assert check_invariants(ledger.snapshot()).ok

    def test_nested_failure_reverts_only_nested(self):
        attacker = ReentrantRecipient(reentry_amount=10)

        def inner_fails(recipient, amount):
            depth_before = attacker.depth
            attacker(recipient, amount)
            # depth_before == 0: внешний перевод, иначе вложенный
            return depth_before == 0

        ledger = VaultLedger(
            bank_cap=1_000,
            withdrawal_threshold=10,
            payment_channel=CallbackPaymentChannel(inner_fails),
        )
        attacker.ledger = ledger
        ledger.deposit("mallory", 20)

        result = ledger.withdraw("mallory", 10)

        assert result.success is True
        assert attacker.inner_results[0].error == LedgerErrorKind.TRANSFER_FAILED
        assert ledger.get_my_balance("mallory") == 10
        assert ledger.get_bank_stats().withdrawal_count == 1
        assert len(ledger.get_events(event_type=LedgerEventType.WITHDRAWAL_SUCCESSFUL)) == 1
        assert check_invariants(ledger.snapshot()).ok

    def test_reentrant_deposit_kept_on_outer_failure(self):
        channel = ReentrantPayoutChannel(
            lambda ledger, recipient: ledger.deposit("bystander", 5),
            fail_outer=True,
        )
        ledger = _ledger_with(channel, bank_cap=100)
        ledger.deposit("A", 10)

        result = ledger.withdraw("A", 10)

        assert result.error == LedgerErrorKind.TRANSFER_FAILED
        assert channel.inner_results[0].success is True
        assert ledger.snapshot().balances == {"A": 10, "bystander": 5}

        stats = ledger.get_bank_stats()
        assert stats.deposit_count == 2
        assert stats.withdrawal_count == 0
        assert stats.total_deposited == 15
        assert [e.event_type for e in ledger.get_events()] == [
            LedgerEventType.DEPOSIT_SUCCESSFUL,
            LedgerEventType.DEPOSIT_SUCCESSFUL,
        ]
        assert check_invariants(ledger.snapshot()).ok


class TestConservation:
    @pytest.mark.parametrize("fail_outer", [False, True])
    def test_paid_plus_held_equals_deposited(self, fail_outer):
        channel = ReentrantPayoutChannel(_withdraw_again(10), fail_outer=fail_outer)
        ledger = _ledger_with(channel)
        ledger.deposit("mallory", 35)

        for _ in range(3):
            ledger.withdraw("mallory", 10)

            held = ledger.get_my_balance("mallory")
            assert channel.paid.total_paid("mallory") + held == 35
            assert ledger.get_bank_stats().total_deposited == held
            assert check_invariants(ledger.snapshot()).ok

    def test_conservation_with_failing_payouts(self):
        channel = ReentrantPayoutChannel(_withdraw_again(10))
        ledger = _ledger_with(channel)
        ledger.deposit("mallory", 50)

        channel.paid.fail_next()
        ledger.withdraw("mallory", 10)
        ledger.withdraw("mallory", 10)

        assert channel.paid.total_paid("mallory") + ledger.get_my_balance("mallory") == 50
        # Отказал первый вложенный перевод, внешний выплачен
        assert [r.succeeded for r in channel.paid.records] == [False, True, True, True]
        assert ledger.get_bank_stats().withdrawal_count == 3
        assert len(ledger.get_events(event_type=LedgerEventType.WITHDRAWAL_SUCCESSFUL)) == 3


class TestInFlightCapacity:
    def test_reentrant_deposit_cannot_take_in_flight_room(self):
        seen_capacity = []

        def deposit_into_freed_room(ledger, recipient):
            seen_capacity.append(ledger.get_remaining_capacity())
            return ledger.deposit("bystander", 10)

        channel = ReentrantPayoutChannel(deposit_into_freed_room, fail_outer=True)
        ledger = _ledger_with(channel, bank_cap=100)
        ledger.deposit("A", 100)

        result = ledger.withdraw("A", 10)

        assert result.error == LedgerErrorKind.TRANSFER_FAILED
        assert seen_capacity == [0]
        assert channel.inner_results[0].error == LedgerErrorKind.BANK_CAP_EXCEEDED
        assert ledger.get_bank_stats().total_deposited == 100
        assert ledger.snapshot().balances == {"A": 100}
        assert check_invariants(ledger.snapshot()).ok

    def test_room_is_released_after_successful_withdraw(self):
        channel = ReentrantPayoutChannel(
            lambda ledger, recipient: ledger.deposit("bystander", 10),
        )
        ledger = _ledger_with(channel, bank_cap=100)
        ledger.deposit("A", 100)

        result = ledger.withdraw("A", 10)

        assert result.success is True
        assert channel.inner_results[0].error == LedgerErrorKind.BANK_CAP_EXCEEDED
        assert ledger.get_remaining_capacity() == 10
        assert ledger.deposit("bystander", 10).success is True
        assert check_invariants(ledger.snapshot()).ok

    def test_partial_in_flight_room(self):
        channel = ReentrantPayoutChannel(
            lambda ledger, recipient: ledger.deposit("bystander", 5),
            fail_outer=True,
        )
        ledger = _ledger_with(channel, bank_cap=100)
        ledger.deposit("A", 90)

        ledger.withdraw("A", 10)

        # Свободные 10 доступны, удерживаемые 10 нет
        assert channel.inner_results[0].success is True
        assert ledger.get_bank_stats().total_deposited == 95
        assert ledger.get_remaining_capacity() == 5
        assert check_invariants(ledger.snapshot()).ok


class TestConcurrency:
    def test_parallel_deposits_never_exceed_cap(self):
        ledger = VaultLedger(bank_cap=1_000, withdrawal_threshold=10)
        barrier = threading.Barrier(20)
        results = []
        results_lock = threading.Lock()

        def worker(idx):
            barrier.wait()
            for _ in range(10):
                r = ledger.deposit(f"acct-{idx}", 7)
                with results_lock:
                    results.append(r)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        accepted = [r for r in results if r.success]
        rejected = [r for r in results if not r.success]

        # 1000 // 7 = 142 депозита помещаются под cap
        assert len(accepted) == 142
        assert all(r.error == LedgerErrorKind.BANK_CAP_EXCEEDED for r in rejected)

        snapshot = ledger.snapshot()
        assert snapshot.stats.total_deposited == 142 * 7
        assert snapshot.stats.deposit_count == 142
        assert check_invariants(snapshot).ok

    def test_parallel_withdrawals_cannot_overdraw(self):
        channel = RecordingPaymentChannel()
        ledger = VaultLedger(bank_cap=1_000, withdrawal_threshold=10, payment_channel=channel)
        ledger.deposit("shared", 95)
        barrier = threading.Barrier(16)
        successes = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            r = ledger.withdraw("shared", 10)
            with lock:
                successes.append(r.success)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert successes.count(True) == 9
        assert ledger.get_my_balance("shared") == 5
        assert channel.total_paid("shared") == 90
        assert check_invariants(ledger.snapshot()).ok
