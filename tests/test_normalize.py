import logging

import pytest

from quota_common import (
    FINAL_HEADERS,
    EmptyInputError,
    InsufficientRowsError,
    MissingHeaderError,
    MissingRequiredColumnError,
    NoValidRowsError,
    RequestTypeCode,
    TransformOptions,
    categorize,
    transform,
)
from quota_common.parsing import HeaderStrategy

RAW_HEADER = "RDQuota\tSubscription ID\tUTC Ticket\tSKU\tRegion\tDeployment Constraints\tEvent ID\tReason"


def _raw(*rows: str) -> str:
    return "\n".join([RAW_HEADER, *rows])


def _canonical_text(records) -> str:
    lines = ["\t".join(["RDQuota", *FINAL_HEADERS])]
    lines.extend("\t".join([r.original_id, *(r.get(h) for h in FINAL_HEADERS)]) for r in records)
    return "\n".join(lines)


def test_raw_export_is_fully_normalized():
    result = transform(
        _raw(
            "101\tsub-1\tQuota Increase\tStandard_D4s_v5 (XIO)\tEast US\t\t-1\tVerification Successful",
            "102\tsub-2\tAZ Enablement/Whitelisting\tStandard_E8s_v5\tWest Europe\tZone 2\t48\tAbandoned",
        )
    )

    first, second = result.records
    assert first.request_type == "Quota Increase"
    assert first.request_type_code is RequestTypeCode.QUOTA_INCREASE
    assert first.vm_type == "Standard_D4s_v5"
    assert first.cores == ""
    assert first.zone == "N/A"
    assert first.status == "Approved"
    assert first.original_id == "101"

    assert second.request_type == "Zonal Enablement"
    assert second.request_type_code is RequestTypeCode.ZONAL_ENABLEMENT
    assert second.cores == "N/A"
    assert second.zone == "Zone 2"
    assert second.status == "Backlogged"

    assert result.report.input_mode == "raw"
    assert result.report.separator == "\t"


@pytest.mark.parametrize("raw_cores", ["-1", "12", "", "N/A"])
def test_zonal_enablement_always_forces_cores_na(raw_cores):
    result = transform(_raw(f"1\tsub\tAZ Enablement/Whitelisting\tsku\teastus\t1\t{raw_cores}\t-"))
    record = result.records[0]
    assert (record.request_type, record.request_type_code, record.cores) == (
        "Zonal Enablement",
        RequestTypeCode.ZONAL_ENABLEMENT,
        "N/A",
    )


@pytest.mark.parametrize(
    "raw_type",
    [
        "Region Enablement/Whitelisting",
        "Whitelisting/Quota Increase",
        "Quota Increase",
        "Quota Decrease",
        "Region Limit Increase",
        "RI Enablement/Whitelisting",
        "Something new",
    ],
)
def test_minus_one_cores_become_empty_for_non_zonal_types(raw_type):
    result = transform(_raw(f"1\tsub\t{raw_type}\tsku\teastus\t\t-1\t"))
    assert result.records[0].cores == ""


def test_status_vocabulary_is_mapped_and_unknown_passes_through():
    result = transform(
        _raw(
            "1\tsub\tQuota Increase\tsku\teastus\t\t4\tAbandoned",
            "2\tsub\tQuota Increase\tsku\teastus\t\t4\t-",
            "3\tsub\tQuota Increase\tsku\teastus\t\t4\tFulfillment Actions Completed",
            "4\tsub\tQuota Increase\tsku\teastus\t\t4\tIn Review",
        )
    )
    assert [r.status for r in result.records] == [
        "Backlogged",
        "Pending Customer Response",
        "Fulfilled",
        "In Review",
    ]


def test_unmapped_request_type_keeps_text_with_unknown_code():
    record = transform(_raw("1\tsub\tCapacity Reservation\tsku\teastus\t\t4\t")).records[0]
    assert record.request_type == "Capacity Reservation"
    assert record.request_type_code is RequestTypeCode.UNKNOWN


def test_raw_mode_accepts_aliases_and_missing_optional_columns():
    text = "QuotaId,SubscriptionId,Location\nq-1,sub-9,Brazil South"
    record = transform(text).records[0]
    assert record.original_id == "q-1"
    assert record.subscription_id == "sub-9"
    assert record.region == "Brazil South"
    assert record.request_type == "Unknown"
    assert record.zone == "N/A"
    assert record.status == ""


def test_raw_mode_missing_subscription_column():
    with pytest.raises(MissingRequiredColumnError) as excinfo:
        transform("ID\tRegion\n1\teastus")
    assert excinfo.value.field == "Subscription ID"
    assert str(excinfo.value) == 'Missing required header column: "Subscription ID"'


def test_raw_mode_missing_region_column():
    with pytest.raises(MissingRequiredColumnError) as excinfo:
        transform("ID\tSubscription ID\n1\tsub")
    assert excinfo.value.field == "Region"


def test_raw_filter_keeps_rows_with_a_real_zone():
    result = transform(_raw("1\t\t\t\t\tZone 1\t\t", "2\tsub\tQuota Increase\tsku\teastus\t\t4\t"))
    assert [r.original_id for r in result.records] == ["1", "2"]
    assert result.report.dropped_row_count == 0


def test_raw_filter_drops_rows_empty_except_defaulted_zone():
    result = transform(_raw("1\t\t\t\t\t\t8\tAbandoned", "2\tsub\tQuota Increase\tsku\teastus\t\t4\t"))
    assert [r.original_id for r in result.records] == ["2"]
    assert result.report.dropped_row_count == 1


def test_only_empty_raw_row_fails_with_no_valid_rows():
    with pytest.raises(NoValidRowsError):
        transform(_raw("55\t\t\t\t\t\t\t"))


def test_banner_lines_above_header_are_skipped():
    text = "Quota requests exported 2024-05-01\n" + _raw("1\tsub\tQuota Increase\tsku\teastus\t\t4\t")
    result = transform(text)
    assert result.report.header_index == 1
    assert result.report.header_strategy_used == "scan"
    assert len(result.records) == 1


def test_first_row_strategy_fails_on_banner_input():
    text = "Quota requests exported 2024-05-01\n" + _raw("1\tsub\tQuota Increase\tsku\teastus\t\t4\t")
    with pytest.raises(MissingHeaderError):
        transform(text, TransformOptions(header_strategy=HeaderStrategy.FIRST_ROW))


def test_azure_devops_banner_and_title_prefix_are_removed():
    banner = (
        "Project: Quota   Server: https://dev.azure.com/capacityrequest   "
        "Query: [None]   List type: Flat"
    )
    text = "\n".join([banner, "Title: " + RAW_HEADER, "1\tsub\tQuota Decrease\tsku\teastus\t\t4\t"])
    result = transform(text)
    assert result.records[0].request_type_code is RequestTypeCode.QUOTA_DECREASE
    assert result.report.header_index == 0


def test_comma_separated_quoted_export():
    text = '"ID","Subscription ID","Ticket","Region"\n"9","sub","Region Limit Increase","eastus2"'
    result = transform(text)
    assert result.report.separator == ","
    assert result.records[0].request_type == "Region Limit Increase"


def test_canonical_input_maps_status_and_localized_labels():
    text = "\n".join(
        [
            "ID\tSubscription ID\tRequest Type\tVM Type\tRegion\tZone\tCores\tStatus",
            "\tsub-1\tHabilitação Zonal\tStandard_D2\tBrazil South\t1\tN/A\tVerification Successful",
            "\tsub-2\tquota increase\tStandard_D4\tEast US\t\t16\t",
            "\tsub-3\tMystery\tStandard_D8\tWest US\t\t8\tApproved",
        ]
    )
    result = transform(text)
    assert result.report.input_mode == "canonical"

    zonal, quota, mystery = result.records
    assert zonal.request_type == "Habilitação Zonal"
    assert zonal.request_type_code is RequestTypeCode.ZONAL_ENABLEMENT
    assert zonal.status == "Approved"
    assert quota.request_type_code is RequestTypeCode.QUOTA_INCREASE
    assert quota.status == "Pending"
    assert quota.zone == "N/A"
    assert mystery.request_type_code is RequestTypeCode.UNKNOWN
    assert [r.original_id for r in result.records] == [
        "pre-transformed-0",
        "pre-transformed-1",
        "pre-transformed-2",
    ]


def test_canonical_input_reads_rdquota_and_drops_blank_rows():
    text = "\n".join(
        [
            "RDQuota\tSubscription ID\tRequest Type\tVM Type\tRegion",
            "77\tsub\tReserved Instances\tsku\teastus",
            "\t\tQuota Increase\t\t",
        ]
    )
    result = transform(text)
    assert len(result.records) == 1
    assert result.records[0].original_id == "77"
    assert result.records[0].request_type_code is RequestTypeCode.RESERVED_INSTANCES
    assert result.report.dropped_row_count == 1


def test_canonical_round_trip_preserves_codes_and_status():
    first = transform(
        _raw(
            "1\tsub-a\tQuota Increase\tsku-a\teastus\t\t10\tFulfillment Actions Completed",
            "2\tsub-b\tAZ Enablement/Whitelisting\tsku-b\twestus\t2\t\t-",
            "3\tsub-c\tRI Enablement/Whitelisting\tsku-c\tnortheurope\t\t4\tAbandoned",
        )
    )
    second = transform(_canonical_text(first.records))

    assert second.report.input_mode == "canonical"
    assert [(r.request_type_code, r.status) for r in second.records] == [
        (r.request_type_code, r.status) for r in first.records
    ]
    assert [r.request_type for r in second.records] == [r.request_type for r in first.records]
    assert [r.original_id for r in second.records] == ["1", "2", "3"]


def test_region_code_stripping_is_opt_in():
    text = _raw("1\tsub\tQuota Increase\tsku\tEast US (EUS)\t\t4\t")
    assert transform(text).records[0].region == "East US (EUS)"
    stripped = transform(text, TransformOptions(region_mode="strip_code"))
    assert stripped.records[0].region == "East US"


def test_groups_keep_first_appearance_and_row_order():
    result = transform(
        _raw(
            "1\tsub\tQuota Increase\tsku\teastus\t\t4\t",
            "2\tsub\tAZ Enablement/Whitelisting\tsku\teastus\t1\t\t",
            "3\tsub\tQuota Increase\tsku\twestus\t\t8\t",
        )
    )
    assert list(result.groups) == ["Quota Increase", "Zonal Enablement"]
    assert [r.original_id for r in result.groups["Quota Increase"]] == ["1", "3"]
    assert len(result.groups["Zonal Enablement"]) == 1
    assert result.report.category_counts == {"Quota Increase": 2, "Zonal Enablement": 1}


def test_categorize_on_empty_input():
    assert categorize([]) == {}


def test_empty_input_fails():
    with pytest.raises(EmptyInputError) as excinfo:
        transform("   \n\t\n")
    assert str(excinfo.value) == "Input data cannot be empty."


def test_header_only_input_fails_with_insufficient_rows():
    with pytest.raises(InsufficientRowsError):
        transform("Subscription ID\tRegion\n")


def test_missing_id_header_fails():
    with pytest.raises(MissingHeaderError) as excinfo:
        transform("Subscription ID\tRegion\nsub\teastus")
    assert str(excinfo.value) == 'Missing required header column: "ID" or "RDQuota"'


def test_transform_is_repeatable_and_reports_via_log_hook(caplog):
    text = _raw("1\tsub\tQuota Increase\tsku\teastus\t\t4\t")
    messages = []
    with caplog.at_level(logging.INFO, logger="quota_common.normalize"):
        first = transform(text, log=messages.append)
    second = transform(text)
    assert first.records == second.records
    assert messages and "1 of 1 rows" in messages[0]
    assert any("Transformed" in rec.message for rec in caplog.records)


def test_records_are_immutable():
    record = transform(_raw("1\tsub\tQuota Increase\tsku\teastus\t\t4\t")).records[0]
    with pytest.raises(AttributeError):
        record.status = "Changed"


def test_blank_first_column_keeps_cells_aligned():
    record = transform("\tID\tSubscription ID\tRegion\n\t1\tsub\teastus").records[0]
    assert (record.original_id, record.subscription_id, record.region) == ("1", "sub", "eastus")


def test_first_row_strategy_given_by_name_is_honoured():
    text = "banner\nID\tSubscription ID\tRegion\n1\tsub\teastus"
    with pytest.raises(MissingHeaderError):
        transform(text, TransformOptions(header_strategy="first_row"))
    assert transform(text, TransformOptions(header_strategy="scan")).report.header_index == 1
