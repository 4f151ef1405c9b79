"""Receipt labels and date formats for the supported languages."""

DEFAULT_LANGUAGE = "en"

TRANSLATIONS: dict[str, dict[str, str]] = {
    "en": {
        "receipt_receiver": "RECEIVER",
        "receipt_sender": "SENDER",
        "receipt_destination": "DESTINATION",
        "receipt_origin": "ORIGIN",
        "receipt_email": "EMAIL",
        "receipt_content": "CONTENT",
        "receipt_weight": "WEIGHT",
        "receipt_address": "DELIVERY ADDRESS",
        "receipt_phone": "CONTACT PHONE",
        "receipt_service": "SERVICE MODE",
        "receipt_payment": "PAYMENT METHOD",
        "receipt_dep_date": "DEPARTURE DATE",
        "receipt_arr_date": "ARRIVAL DATE",
    },
    "pt": {
        "receipt_receiver": "DESTINATÁRIO",
        "receipt_sender": "REMETENTE",
        "receipt_destination": "DESTINO",
        "receipt_origin": "ORIGEM",
        "receipt_email": "E-MAIL",
        "receipt_content": "CONTEÚDO",
        "receipt_weight": "PESO",
        "receipt_address": "ENDEREÇO DE ENTREGA",
        "receipt_phone": "TELEFONE DE CONTATO",
        "receipt_service": "MODO DE SERVIÇO",
        "receipt_payment": "MÉTODO DE PAGAMENTO",
        "receipt_dep_date": "DATA DE PARTIDA",
        "receipt_arr_date": "DATA DE CHEGADA",
    },
    "es": {
        "receipt_receiver": "DESTINATARIO",
        "receipt_sender": "REMITENTE",
        "receipt_destination": "DESTINO",
        "receipt_origin": "ORIGEN",
        "receipt_email": "CORREO",
        "receipt_content": "CONTENIDO",
        "receipt_weight": "PESO",
        "receipt_address": "DIRECCIÓN DE ENTREGA",
        "receipt_phone": "TELÉFONO DE CONTACTO",
        "receipt_service": "MODO DE SERVICIO",
        "receipt_payment": "MÉTODO DE PAGO",
        "receipt_dep_date": "FECHA DE SALIDA",
        "receipt_arr_date": "FECHA DE LLEGADA",
    },
    "de": {
        "receipt_receiver": "EMPFÄNGER",
        "receipt_sender": "ABSENDER",
        "receipt_destination": "ZIELORT",
        "receipt_origin": "HERKUNFT",
        "receipt_email": "E-MAIL",
        "receipt_content": "INHALT",
        "receipt_weight": "GEWICHT",
        "receipt_address": "LIEFERADRESSE",
        "receipt_phone": "KONTAKTTELEFON",
        "receipt_service": "SERVICEART",
        "receipt_payment": "ZAHLUNGSART",
        "receipt_dep_date": "ABFAHRTSDATUM",
        "receipt_arr_date": "ANKUNFTSDATUM",
    },
}


def translate(language: str, key: str) -> str:
    """Label for `key`; unknown languages and missing keys fall back to English."""
    table = TRANSLATIONS.get((language or "").lower(), TRANSLATIONS[DEFAULT_LANGUAGE])
    return table.get(key) or TRANSLATIONS[DEFAULT_LANGUAGE].get(key, key)


def date_format(language: str) -> str:
    if (language or "").lower() == "de":
        return "%d.%m.%Y"
    return "%d/%m/%Y"
