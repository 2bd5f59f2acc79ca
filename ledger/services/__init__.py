"""서비스 모듈"""
from ledger.services.transaction_manager import atomic_operation, atomic_session
from ledger.services.royalty import compute_royalty, RoyaltyEditor
from ledger.services.listing import Page, TableState, paginate, stable_sort
from ledger.services.sales import (
    SaleView,
    ValidatedSale,
    BatchSaveResult,
    validate_sale,
    list_sales,
    list_sales_for_book,
    get_sale,
    add_sale,
    update_sale,
    delete_sale,
    toggle_paid_status,
    save_pending_sales,
)
from ledger.services.author_payments import (
    AuthorGroup,
    build_author_groups,
    group_unpaid_by_author,
    get_author_payment_page,
    mark_group_paid,
)
from ledger.services.bulk_import import (
    ParsedRow,
    InvalidRow,
    BulkParseResult,
    BookLookup,
    PendingSaleItem,
    parse_bulk_text,
    match_parsed_rows,
    submit_parsed_rows,
)
from ledger.services.books import (
    BookView,
    BookDetail,
    SeriesView,
    create_book,
    update_book,
    delete_book,
    get_book_detail,
    list_books,
    list_series,
    create_series,
    load_book_lookup,
)

__all__ = [
    'atomic_operation',
    'atomic_session',
    'compute_royalty',
    'RoyaltyEditor',
    'Page',
    'TableState',
    'paginate',
    'stable_sort',
    'SaleView',
    'ValidatedSale',
    'BatchSaveResult',
    'validate_sale',
    'list_sales',
    'list_sales_for_book',
    'get_sale',
    'add_sale',
    'update_sale',
    'delete_sale',
    'toggle_paid_status',
    'save_pending_sales',
    'AuthorGroup',
    'build_author_groups',
    'group_unpaid_by_author',
    'get_author_payment_page',
    'mark_group_paid',
    'ParsedRow',
    'InvalidRow',
    'BulkParseResult',
    'BookLookup',
    'PendingSaleItem',
    'parse_bulk_text',
    'match_parsed_rows',
    'submit_parsed_rows',
    'BookView',
    'BookDetail',
    'SeriesView',
    'create_book',
    'update_book',
    'delete_book',
    'get_book_detail',
    'list_books',
    'list_series',
    'create_series',
    'load_book_lookup',
]
