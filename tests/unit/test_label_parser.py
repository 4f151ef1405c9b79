"""
Tests for the line-aware manifest extractor and the keyword pre-filter.
"""

from webtracker.services.label_parser import keyword_classes, parse_labels, validate_phone

FULL_MANIFEST = """Sender Name: John Doe
Sender Country: UK
Receiver Name: Jane Smith
Receiver Phone: +234 800 123 4567
Receiver Address: 12 Marina Road, Lagos
Receiver Country: Nigeria"""


def test_parse_full_manifest():
    manifest = parse_labels(FULL_MANIFEST)

    assert manifest.is_complete
    assert manifest.sender_name == "John Doe"
    assert manifest.sender_country == "UK"
    assert manifest.receiver_name == "Jane Smith"
    assert manifest.receiver_phone == "+234 800 123 4567"
    assert manifest.receiver_address == "12 Marina Road, Lagos"
    assert manifest.receiver_country == "Nigeria"


def test_values_keep_original_case_and_labels_are_case_insensitive():
    manifest = parse_labels("RECEIVER NAME: McDonald O'Neil\nsender name: ANNA")

    assert manifest.receiver_name == "McDonald O'Neil"
    assert manifest.sender_name == "ANNA"


def test_missing_fields_reported_in_order():
    manifest = parse_labels("Receiver Name: Jane Smith\nSender Name: John Doe")

    assert not manifest.is_complete
    assert manifest.missing_fields == [
        "Receiver Phone",
        "Receiver Address",
        "Receiver Country",
        "Sender Country",
    ]


def test_first_value_for_a_field_wins():
    manifest = parse_labels("Receiver Name: First\nReceiver Name: Second")

    assert manifest.receiver_name == "First"


def test_bullets_numbering_and_bold_markers_are_ignored():
    text = "1. *Receiver Name:* Jane\n• Receiver Phone Number: 0803 000 0000\n- Sender: Bob"
    manifest = parse_labels(text)

    assert manifest.receiver_name == "Jane"
    assert manifest.receiver_phone == "0803 000 0000"
    assert manifest.sender_name == "Bob"


def test_sub_label_alone_defaults_to_receiver():
    manifest = parse_labels("Phone: 08030000000\nAddress: 5 Broad St")

    assert manifest.receiver_phone == "08030000000"
    assert manifest.receiver_address == "5 Broad St"


def test_origin_alone_names_the_sender_country():
    manifest = parse_labels("Origin: China")

    assert manifest.sender_country == "China"


def test_plain_prose_is_not_mistaken_for_labels():
    manifest = parse_labels("from Lagos with love\nname the day and I will come")

    assert manifest.sender_name == ""
    assert manifest.receiver_name == ""


def test_keyword_classes_for_full_manifest():
    assert keyword_classes(FULL_MANIFEST) == {"sender", "receiver", "phone", "name"}


def test_keyword_classes_for_chatter():
    assert keyword_classes("good morning everyone") == set()


def test_keyword_classes_three_of_four():
    assert keyword_classes("sender John, receiver Jane, phone 0803") == {
        "sender",
        "receiver",
        "phone",
    }


def test_validate_phone_needs_five_digits():
    assert validate_phone("+234 80")
    assert not validate_phone("12-34")
