from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger("ATM_Simulator")

DAILY_LIMIT = Decimal("1000.00")
MAX_PIN_ATTEMPTS = 3

DEFAULT_BALANCES: Dict[str, str] = {"123": "500.00", "456": "1000.00"}
DEFAULT_PINS: Dict[str, str] = {"123": "1234", "456": "4567"}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def today() -> date:
    return datetime.now().date()


def money(v: str | int | float | Decimal) -> Decimal:
    if isinstance(v, Decimal):
        x = v
    else:
        x = Decimal(str(v))
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_amount(v: str | int | float | Decimal) -> Optional[Decimal]:
    """money(v), or None when v is not a finite amount that fits in cents."""
    try:
        x = v if isinstance(v, Decimal) else Decimal(str(v))
        if not x.is_finite():
            return None
        return money(x)
    except InvalidOperation:
        return None


def plain(v: Decimal) -> str:
    """Shortest plain rendering of an amount: 100.00 -> '100', 12.50 -> '12.5'."""
    return format(v.normalize(), "f")


class BankError(Exception):
    pass


class Invalid(BankError):
    pass


class Failure(Enum):
    INVALID_AMOUNT = "Invalid amount."
    INSUFFICIENT_FUNDS = "Insufficient balance."
    DAILY_LIMIT_EXCEEDED = "Exceeded daily withdrawal limit."
    INCORRECT_PIN = "Incorrect PIN."
    ACCOUNT_LOCKED = "Account is locked due to multiple failed attempts."
    UNKNOWN_ACCOUNT = "Invalid account ID(s) provided."
    SELF_TRANSFER = "Cannot transfer funds into your own account."


class AccountState(Enum):
    UNLOCKED = "unlocked"
    LOCKED = "locked"


@dataclass(frozen=True)
class Result:
    """Outcome of a core operation. Truthy only on success."""

    ok: bool
    error: Optional[Failure] = None
    remaining: Optional[int] = None

    def __bool__(self) -> bool:
        return self.ok

    @staticmethod
    def failed(error: Failure, remaining: Optional[int] = None) -> "Result":
        return Result(ok=False, error=error, remaining=remaining)

    @property
    def message(self) -> str:
        if self.error is None:
            return "OK"
        if self.error is Failure.INCORRECT_PIN and self.remaining is not None:
            return f"{self.error.value} You have {self.remaining} chance(s) left."
        return self.error.value


OK = Result(ok=True)


class BankAccount:
    def __init__(self, account_id: str, balance: str | int | float | Decimal = Decimal("0.00"),
                 daily_limit: Decimal = DAILY_LIMIT) -> None:
        opening = to_amount(balance)
        if opening is None:
            raise Invalid("opening balance invalid")
        if opening < Decimal("0"):
            raise Invalid("opening balance must be >= 0")
        self.account_id = account_id
        self._balance = opening
        self._daily_limit = money(daily_limit)
        self._daily_withdrawn = Decimal("0.00")
        self._history: List[str] = []
        self._day = today()

    def __repr__(self) -> str:
        return f"BankAccount({self.account_id}, {self._balance})"

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def daily_limit(self) -> Decimal:
        return self._daily_limit

    @property
    def daily_withdrawn(self) -> Decimal:
        return self._daily_withdrawn

    def _roll_day(self) -> None:
        # the withdrawal accumulator belongs to one calendar day
        d = today()
        if d != self._day:
            self._day = d
            self._daily_withdrawn = Decimal("0.00")

    def get_balance(self) -> Decimal:
        return self._balance

    def get_transaction_history(self) -> Tuple[str, ...]:
        return tuple(self._history)

    def remaining_daily_limit(self) -> Decimal:
        self._roll_day()
        return self._daily_limit - self._daily_withdrawn

    def convert_to_currency(self, rate: str | int | float | Decimal) -> Decimal:
        if not isinstance(rate, Decimal):
            rate = Decimal(str(rate))
        return self._balance * rate

    def _credited(self, amt: Decimal) -> Optional[Decimal]:
        """Balance after a deposit of amt, or None when amt cannot be deposited."""
        if amt <= Decimal("0"):
            return None
        try:
            return money(self._balance + amt)
        except InvalidOperation:
            return None

    def _check_withdraw(self, amt: Decimal) -> Optional[Failure]:
        self._roll_day()
        if amt > self._balance:
            return Failure.INSUFFICIENT_FUNDS
        if self._daily_withdrawn + amt > self._daily_limit:
            return Failure.DAILY_LIMIT_EXCEEDED
        if amt <= Decimal("0"):
            return Failure.INVALID_AMOUNT
        return None

    def _credit(self, amt: Decimal, new_balance: Decimal) -> None:
        self._balance = new_balance
        self._history.append(f"Deposited: {plain(amt)}")

    def _debit(self, amt: Decimal) -> None:
        # 0 < amt <= balance and the daily total stays under the limit, so both fit in cents
        self._balance = money(self._balance - amt)
        self._daily_withdrawn = money(self._daily_withdrawn + amt)
        self._history.append(f"Withdrew: {plain(amt)}")

    def deposit(self, amount: str | int | float | Decimal) -> Result:
        amt = to_amount(amount)
        new_balance = None if amt is None else self._credited(amt)
        if new_balance is None:
            logger.warning("deposit rejected on %s: %s", self.account_id, Failure.INVALID_AMOUNT.name)
            return Result.failed(Failure.INVALID_AMOUNT)
        self._credit(amt, new_balance)
        logger.info("deposit: %s into %s, balance %s", amt, self.account_id, self._balance)
        return OK

    def withdraw(self, amount: str | int | float | Decimal) -> Result:
        amt = to_amount(amount)
        failure = Failure.INVALID_AMOUNT if amt is None else self._check_withdraw(amt)
        if failure is not None:
            logger.warning("withdrawal rejected on %s: %s", self.account_id, failure.name)
            return Result.failed(failure)
        self._debit(amt)
        logger.info("withdrawal: %s from %s, balance %s", amt, self.account_id, self._balance)
        return OK


class ATM:
    def __init__(self, balances: Dict[str, str | int | float | Decimal], pins: Dict[str, str]) -> None:
        if set(balances) != set(pins):
            raise Invalid("account and pin registries differ")
        self.accounts: Dict[str, BankAccount] = {
            aid: BankAccount(account_id=aid, balance=b) for aid, b in balances.items()
        }
        self._pins: Dict[str, str] = dict(pins)
        self._failed: Dict[str, int] = {}
        self._locked: Dict[str, bool] = {}

    def failed_attempts(self, account_id: str) -> int:
        return self._failed.get(account_id, 0)

    def is_locked(self, account_id: str) -> bool:
        return self._locked.get(account_id, False)

    def state(self, account_id: str) -> AccountState:
        return AccountState.LOCKED if self.is_locked(account_id) else AccountState.UNLOCKED

    def select_account(self, account_id: str) -> Optional[BankAccount]:
        return self.accounts.get(account_id)

    def verify_pin(self, account_id: str, pin: str) -> Result:
        if self.is_locked(account_id):
            logger.warning("pin attempt on locked account %s", account_id)
            return Result.failed(Failure.ACCOUNT_LOCKED)

        if account_id in self._pins and self._pins[account_id] == pin:
            self._failed[account_id] = 0
            return OK

        attempts = self.failed_attempts(account_id) + 1
        self._failed[account_id] = attempts
        if attempts >= MAX_PIN_ATTEMPTS:
            self._locked[account_id] = True
            logger.critical("account %s locked after %d failed attempts", account_id, attempts)
            return Result.failed(Failure.ACCOUNT_LOCKED)
        logger.warning("incorrect pin for %s (%d/%d)", account_id, attempts, MAX_PIN_ATTEMPTS)
        return Result.failed(Failure.INCORRECT_PIN, remaining=MAX_PIN_ATTEMPTS - attempts)

    def change_pin(self, account_id: str, old_pin: str, new_pin: str) -> Result:
        r = self.verify_pin(account_id, old_pin)
        if not r:
            return r
        self._pins[account_id] = new_pin
        logger.info("pin changed for %s", account_id)
        return OK

    def transfer_funds(self, source_id: str, target_id: str, amount: str | int | float | Decimal) -> Result:
        if source_id == target_id:
            return Result.failed(Failure.SELF_TRANSFER)
        src = self.accounts.get(source_id)
        dst = self.accounts.get(target_id)
        if src is None or dst is None:
            return Result.failed(Failure.UNKNOWN_ACCOUNT)
        amt = to_amount(amount)
        if amt is None:
            return Result.failed(Failure.INVALID_AMOUNT)
        if src.get_balance() < amt:
            return Result.failed(Failure.INSUFFICIENT_FUNDS)

        # both legs are checked, and the new target balance computed, before either is applied
        failure = src._check_withdraw(amt)
        new_balance = dst._credited(amt)
        if failure is None and new_balance is None:
            failure = Failure.INVALID_AMOUNT
        if failure is not None:
            logger.warning("transfer %s -> %s rejected: %s", source_id, target_id, failure.name)
            return Result.failed(failure)

        src._debit(amt)
        dst._credit(amt, new_balance)
        logger.info("transfer: %s from %s to %s", amt, source_id, target_id)
        return OK


def check_balance(account: BankAccount) -> str:
    return f"Your current balance is: {account.get_balance()}"


def show_transaction_history(account: BankAccount) -> str:
    history = account.get_transaction_history()
    if not history:
        return "No transactions found."
    return "\n".join(("Transaction History:",) + history)


def show_converted_balance(account: BankAccount, rate: str | int | float | Decimal) -> str:
    converted = money(account.convert_to_currency(rate))
    return f"Your balance in the selected currency: {converted}"


def describe(result: Result) -> str:
    return result.message


class Command(Enum):
    BALANCE = 1
    DEPOSIT = 2
    WITHDRAW = 3
    HISTORY = 4
    CONVERT = 5
    CHANGE_PIN = 6
    TRANSFER = 7
    EXIT = 8


MENU = (
    "ATM Menu:",
    "1. Check Balance",
    "2. Deposit",
    "3. Withdraw",
    "4. View Transaction History",
    "5. Convert Balance to Another Currency",
    "6. Change PIN",
    "7. Transfer Funds",
    "8. Exit",
)


def dispatch(atm: ATM, account_id: str, command: Command, args: Sequence[object] = ()) -> str:
    """Run one menu command against the core and return the text to show."""
    account = atm.select_account(account_id)
    if account is None:
        return Failure.UNKNOWN_ACCOUNT.value

    if command is Command.BALANCE:
        return check_balance(account)

    if command is Command.DEPOSIT:
        r = account.deposit(args[0])
        if not r:
            return describe(r)
        return f"Deposit successful. Current balance: {account.get_balance()}"

    if command is Command.WITHDRAW:
        r = account.withdraw(args[0])
        if not r:
            return describe(r)
        return f"Withdrawal successful. Current balance: {account.get_balance()}"

    if command is Command.HISTORY:
        return show_transaction_history(account)

    if command is Command.CONVERT:
        return show_converted_balance(account, args[0])

    if command is Command.CHANGE_PIN:
        r = atm.change_pin(account_id, str(args[0]), str(args[1]))
        if not r:
            return describe(r)
        return "PIN successfully changed."

    if command is Command.TRANSFER:
        target_id = str(args[0])
        r = atm.transfer_funds(account_id, target_id, args[1])
        if not r:
            return describe(r)
        amt = money(args[1])
        return f"Transfer successful. {plain(amt)} transferred from account {account_id} to account {target_id}"

    return "Thank you for using the ATM. Goodbye!"


def parse_amount(s: str) -> Decimal:
    s = s.strip()
    if not s:
        raise Invalid("amount required")
    try:
        x = Decimal(s)
        if not x.is_finite():
            raise Invalid("amount invalid")
        return money(x)
    except InvalidOperation:
        raise Invalid("amount invalid") from None


def parse_rate(s: str) -> Decimal:
    s = s.strip()
    if not s:
        raise Invalid("rate required")
    try:
        x = Decimal(s)
    except InvalidOperation:
        raise Invalid("rate invalid") from None
    if not x.is_finite():
        raise Invalid("rate invalid")
    return x


def parse_command(s: str) -> Optional[Command]:
    try:
        return Command(int(s.strip()))
    except ValueError:
        return None


def prompt_args(command: Command) -> Tuple[object, ...]:
    if command is Command.DEPOSIT:
        return (parse_amount(input("Enter amount to deposit: ")),)
    if command is Command.WITHDRAW:
        return (parse_amount(input("Enter amount to withdraw: ")),)
    if command is Command.CONVERT:
        return (parse_rate(input("Enter the exchange rate: ")),)
    if command is Command.CHANGE_PIN:
        old_pin = input("Enter your current PIN: ").strip()
        new_pin = input("Enter your new PIN: ").strip()
        return (old_pin, new_pin)
    if command is Command.TRANSFER:
        target_id = input("Enter target account ID: ").strip()
        return (target_id, parse_amount(input("Enter amount to transfer: ")))
    return ()


def login(atm: ATM, account_id: str) -> bool:
    for _ in range(MAX_PIN_ATTEMPTS):
        r = atm.verify_pin(account_id, input("Enter your PIN: ").strip())
        if r:
            return True
        print(describe(r))
        if r.error is Failure.ACCOUNT_LOCKED:
            break
    return False


def menu(atm: ATM, account_id: str) -> None:
    while True:
        print()
        for line in MENU:
            print(line)
        command = parse_command(input("Choose an option: "))
        if command is None:
            print("Invalid option. Please try again.")
            continue

        try:
            args = prompt_args(command)
            print(dispatch(atm, account_id, command, args))
        except BankError as e:
            print(f"error: {e}")
            continue
        except Exception as e:
            print(f"fatal: {type(e).__name__}: {e}")
            continue

        if command is Command.EXIT:
            return


def session(atm: ATM) -> int:
    try:
        account_id = input("Enter your account ID: ").strip()
        if atm.select_account(account_id) is None:
            print("Invalid account ID.")
            return 1
        if not login(atm, account_id):
            return 1
        menu(atm, account_id)
    except (EOFError, KeyboardInterrupt):
        print()
    return 0


def main(argv: List[str]) -> int:
    level = logging.ERROR
    for arg in argv[1:]:
        if arg in {"-v", "--verbose"}:
            level = logging.INFO
        else:
            print(f"usage: {argv[0]} [-v|--verbose]")
            return 2
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return session(ATM(DEFAULT_BALANCES, DEFAULT_PINS))


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
