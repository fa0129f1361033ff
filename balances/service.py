import logging
from decimal import Context, Decimal, InvalidOperation, MAX_PREC, ROUND_HALF_UP, localcontext
from typing import Iterable, Iterator, Optional, Sequence

from .config import Settings
from .models import (
    MemberId,
    Member,
    Expense,
    Settlement,
    DebtTo,
    DebtFrom,
    BalanceRecord,
    GroupBalancesRequest,
    GroupBalancesResponse,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Ledger arithmetic never rounds; amounts are already fixed point when they arrive.
EXACT = Context(prec=MAX_PREC, rounding=ROUND_HALF_UP)


class BalanceServiceError(Exception):
    pass


class UnknownMemberError(BalanceServiceError):
    def __init__(self, member_id):
        self.member_id = member_id
        super().__init__(f"Member {member_id} is not part of this group")


class NegativeAmountError(BalanceServiceError):
    def __init__(self, amount, source: str):
        self.amount = amount
        self.source = source
        super().__init__(f"{source} amount must not be negative, got {amount}")


class DuplicateMemberError(BalanceServiceError):
    def __init__(self, member_id):
        self.member_id = member_id
        super().__init__(f"Member {member_id} appears more than once in the group")


class InvalidAmountError(BalanceServiceError):
    def __init__(self, amount, source: str):
        self.amount = amount
        self.source = source
        super().__init__(f"{source} amount {amount} is not a representable money amount")


class NetTotals:
    """Signed net position per member: positive is owed money, negative owes money."""

    def __init__(self, member_ids: Iterable[MemberId]):
        self._totals: dict[MemberId, Decimal] = {member_id: ZERO for member_id in member_ids}

    def __getitem__(self, member_id: MemberId) -> Decimal:
        try:
            return self._totals[member_id]
        except KeyError:
            raise UnknownMemberError(member_id) from None

    def __contains__(self, member_id) -> bool:
        return member_id in self._totals

    def __iter__(self) -> Iterator[MemberId]:
        return iter(self._totals)

    def __len__(self) -> int:
        return len(self._totals)

    def __eq__(self, other) -> bool:
        if not isinstance(other, NetTotals):
            return NotImplemented
        return self._totals == other._totals

    def __repr__(self) -> str:
        return f"NetTotals({self._totals!r})"

    def credit(self, member_id: MemberId, amount: Decimal) -> None:
        self._totals[member_id] = self[member_id] + amount

    def debit(self, member_id: MemberId, amount: Decimal) -> None:
        self._totals[member_id] = self[member_id] - amount

    def items(self):
        return self._totals.items()

    def total(self) -> Decimal:
        with localcontext(EXACT):
            return sum(self._totals.values(), ZERO)

    def as_dict(self) -> dict[MemberId, Decimal]:
        return dict(self._totals)


class PairwiseLedger:
    """How much each member owes each other member, one entry per directed pair.

    ``ledger[debtor, creditor]`` and ``ledger[creditor, debtor]`` are tracked
    independently. An entry can be negative when settlements along that edge
    exceed the debt recorded on it.
    """

    def __init__(self, member_ids: Iterable[MemberId]):
        self._member_ids = tuple(member_ids)
        self._members = frozenset(self._member_ids)
        self._owed: dict[tuple[MemberId, MemberId], Decimal] = {
            (debtor, creditor): ZERO
            for debtor in self._member_ids
            for creditor in self._member_ids
            if debtor != creditor
        }

    @property
    def member_ids(self) -> tuple[MemberId, ...]:
        return self._member_ids

    def _key(self, pair) -> tuple[MemberId, MemberId]:
        debtor, creditor = pair
        for member_id in (debtor, creditor):
            if member_id not in self._members:
                raise UnknownMemberError(member_id)
        if debtor == creditor:
            raise KeyError(f"No ledger entry for a member with themself: {debtor}")
        return debtor, creditor

    def __getitem__(self, pair) -> Decimal:
        return self._owed[self._key(pair)]

    def __setitem__(self, pair, amount: Decimal) -> None:
        self._owed[self._key(pair)] = amount

    def __eq__(self, other) -> bool:
        if not isinstance(other, PairwiseLedger):
            return NotImplemented
        return self._owed == other._owed

    def __repr__(self) -> str:
        return f"PairwiseLedger({self.as_dict()!r})"

    def add(self, debtor: MemberId, creditor: MemberId, amount: Decimal) -> None:
        self[debtor, creditor] = self[debtor, creditor] + amount

    def subtract(self, debtor: MemberId, creditor: MemberId, amount: Decimal) -> None:
        self[debtor, creditor] = self[debtor, creditor] - amount

    def items(self):
        return self._owed.items()

    def copy(self) -> "PairwiseLedger":
        clone = PairwiseLedger(self._member_ids)
        clone._owed = dict(self._owed)
        return clone

    def as_dict(self) -> dict[MemberId, dict[MemberId, Decimal]]:
        return {
            debtor: {
                creditor: self._owed[debtor, creditor]
                for creditor in self._member_ids
                if creditor != debtor
            }
            for debtor in self._member_ids
        }


def _unique_member_ids(member_ids: Iterable[MemberId]) -> list[MemberId]:
    ordered: list[MemberId] = []
    seen: set[MemberId] = set()
    for member_id in member_ids:
        if member_id in seen:
            logger.warning("Rejecting group with duplicate member %s", member_id)
            raise DuplicateMemberError(member_id)
        seen.add(member_id)
        ordered.append(member_id)
    return ordered


def _check_member(members: frozenset, member_id: MemberId) -> MemberId:
    if member_id not in members:
        logger.warning("Rejecting reference to unknown member %s", member_id)
        raise UnknownMemberError(member_id)
    return member_id


def _to_amount(value, quantum: Decimal, source: str) -> Decimal:
    try:
        amount = Decimal(str(value))
        negative = amount < ZERO
        if not negative:
            return amount.quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        logger.warning("Rejecting unrepresentable %s amount", source.lower())
        raise InvalidAmountError(value, source) from None
    logger.warning("Rejecting negative %s amount", source.lower())
    raise NegativeAmountError(amount, source)


def accumulate(
    member_ids: Iterable[MemberId],
    expenses: Iterable[Expense],
    settlements: Iterable[Settlement],
    *,
    places: int = 2,
) -> tuple[NetTotals, PairwiseLedger]:
    """Fold expenses and settlements into net totals and a pairwise ledger.

    Splits owed by the payer to themself, and splits already marked paid,
    leave every balance untouched. A settlement reduces only the directed
    edge it was paid along (payer -> receiver); it is neither clamped at
    zero nor netted against the reverse edge.

    Raises UnknownMemberError, NegativeAmountError, InvalidAmountError or
    DuplicateMemberError on bad input, in which case nothing is returned.
    """
    member_ids = _unique_member_ids(member_ids)
    members = frozenset(member_ids)
    quantum = Decimal(1).scaleb(-places)

    totals = NetTotals(member_ids)
    ledger = PairwiseLedger(member_ids)

    expense_count = 0
    settlement_count = 0
    with localcontext(EXACT):
        for expense in expenses:
            expense_count += 1
            payer = _check_member(members, expense.paid_by_user_id)
            for split in expense.splits:
                debtor = _check_member(members, split.user_id)
                amount = _to_amount(split.amount, quantum, "Split")
                if debtor == payer or split.paid:
                    continue
                totals.credit(payer, amount)
                totals.debit(debtor, amount)
                ledger.add(debtor, payer, amount)

        for settlement in settlements:
            settlement_count += 1
            payer = _check_member(members, settlement.paid_by_user_id)
            receiver = _check_member(members, settlement.received_by_user_id)
            amount = _to_amount(settlement.amount, quantum, "Settlement")
            if payer == receiver:
                continue
            totals.credit(payer, amount)
            totals.debit(receiver, amount)
            ledger.subtract(payer, receiver, amount)

    logger.debug(
        "Accumulated %d expenses and %d settlements over %d members",
        expense_count, settlement_count, len(member_ids),
    )
    return totals, ledger


def net_pairwise(ledger: PairwiseLedger) -> PairwiseLedger:
    """Collapse each pair's two directed debts into one, leaving the other at zero.

    Returns a new ledger; the one passed in is left as it was.
    """
    netted = ledger.copy()
    member_ids = ledger.member_ids
    with localcontext(EXACT):
        for i, a in enumerate(member_ids):
            for b in member_ids[i + 1:]:
                diff = ledger[a, b] - ledger[b, a]
                if diff > ZERO:
                    netted[a, b] = diff
                    netted[b, a] = ZERO
                elif diff < ZERO:
                    netted[b, a] = -diff
                    netted[a, b] = ZERO
                else:
                    netted[a, b] = ZERO
                    netted[b, a] = ZERO
    return netted


def present(
    members: Sequence[Member],
    totals: NetTotals,
    ledger: PairwiseLedger,
) -> list[BalanceRecord]:
    member_ids = [member.id for member in members]
    records = []
    for member in members:
        others = [other for other in member_ids if other != member.id]
        records.append(BalanceRecord(
            id=member.id,
            name=member.name,
            image_url=member.image_url,
            role=member.role,
            total_balance=totals[member.id],
            owes=[
                DebtTo(to=other, amount=ledger[member.id, other])
                for other in others
                if ledger[member.id, other] > ZERO
            ],
            owed_by=[
                DebtFrom(from_=other, amount=ledger[other, member.id])
                for other in others
                if ledger[other, member.id] > ZERO
            ],
        ))
    return records


class BalanceService:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def compute(
        self,
        member_ids: Iterable[MemberId],
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement],
        net: Optional[bool] = None,
    ) -> tuple[NetTotals, PairwiseLedger]:
        totals, ledger = accumulate(
            member_ids, expenses, settlements,
            places=self.settings.amount_places,
        )
        if net is None:
            net = self.settings.net_pairwise_debts
        if net:
            ledger = net_pairwise(ledger)
        return totals, ledger

    def get_group_balances(
        self,
        request: GroupBalancesRequest,
        net: Optional[bool] = None,
    ) -> GroupBalancesResponse:
        totals, ledger = self.compute(
            [member.id for member in request.members],
            request.expenses,
            request.settlements,
            net=net,
        )
        return GroupBalancesResponse(
            group=request.group,
            members=request.members,
            expenses=request.expenses,
            settlements=request.settlements,
            balances=present(request.members, totals, ledger),
            user_lookup_map={member.id: member for member in request.members},
        )
