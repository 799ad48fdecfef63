"""JSON-LD schema generator: builds, renders and validates structured data.

Supports Article, BlogPosting, LocalBusiness, Service, ProfessionalService,
FAQPage, HowTo, BreadcrumbList, Organization, Review and AggregateRating.
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Optional

logger = logging.getLogger(__name__)

SCHEMA_CONTEXT = "https://schema.org"

# ---------------------------------------------------------------------------
# Field registries used by validate_schema()
# ---------------------------------------------------------------------------

_REQUIRED_FIELDS: dict[str, list[str]] = {
    "Article": ["headline", "author", "datePublished"],
    "BlogPosting": ["headline", "author", "datePublished"],
    "LocalBusiness": ["name", "address"],
    "FAQPage": ["mainEntity"],
    "HowTo": ["name", "step"],
    "BreadcrumbList": ["itemListElement"],
    "Organization": ["name"],
    "Review": ["itemReviewed", "reviewRating", "author"],
    "AggregateRating": ["itemReviewed", "ratingValue"],
}

_RECOMMENDED_FIELDS: dict[str, list[str]] = {
    "Article": ["image", "dateModified", "publisher", "description"],
    "BlogPosting": ["image", "dateModified", "publisher", "description"],
    "LocalBusiness": ["telephone", "openingHoursSpecification", "geo", "url"],
    "Service": ["description", "provider", "areaServed"],
    "ProfessionalService": ["description", "provider", "priceRange"],
    "HowTo": ["description", "totalTime", "tool", "supply"],
    "Organization": ["url", "logo", "sameAs", "contactPoint"],
}

_DAY_NAMES = {
    "Mo": "Monday",
    "Tu": "Tuesday",
    "We": "Wednesday",
    "Th": "Thursday",
    "Fr": "Friday",
    "Sa": "Saturday",
    "Su": "Sunday",
}


def parse_opening_hours(hours: str) -> dict[str, Any]:
    """Turn ``"Mo-Fr 09:00-17:00"`` into an OpeningHoursSpecification."""
    days_part, _, time_part = hours.strip().partition(" ")
    opens, _, closes = time_part.partition("-")
    codes = list(_DAY_NAMES)
    if "-" in days_part:
        start, end = days_part.split("-", 1)
        days = [_DAY_NAMES[c] for c in codes[codes.index(start):codes.index(end) + 1]]
    else:
        days = [_DAY_NAMES[d.strip()] for d in days_part.split(",") if d.strip()]
    return {
        "@type": "OpeningHoursSpecification",
        "dayOfWeek": days,
        "opens": opens,
        "closes": closes,
    }


def render_schema_tag(schema: dict) -> str:
    """Render *schema* as an inline ``application/ld+json`` script tag."""
    return (
        '<script type="application/ld+json">\n'
        + json.dumps(schema, indent=2)
        + "\n</script>"
    )


class SchemaGenerator:
    """Generate and validate JSON-LD structured data.

    Usage::

        gen = SchemaGenerator()
        faq = gen.generate_schema("FAQ", {"questions": [
            {"question": "What is SEO?", "answer": "Search Engine Optimization."},
        ]})
        validation = gen.validate_schema(faq)
    """

    # ------------------------------------------------------------------
    # Article / BlogPosting
    # ------------------------------------------------------------------

    def generate_article_schema(
        self,
        title: str,
        author: str,
        date_published: str,
        date_modified: str = "",
        description: str = "",
        image_url: str = "",
        publisher_name: str = "",
        publisher_logo: str = "",
        url: str = "",
        word_count: int = 0,
        schema_type: str = "Article",
    ) -> dict:
        """Generate Article (or BlogPosting) JSON-LD."""
        schema: dict[str, Any] = {
            "@context": SCHEMA_CONTEXT,
            "@type": schema_type,
            "headline": title[:110],
            "author": {"@type": "Person", "name": author},
            "datePublished": self._normalise_date(date_published),
            "dateModified": self._normalise_date(date_modified or date_published),
        }
        if description:
            schema["description"] = description[:300]
        if image_url:
            schema["image"] = image_url
        if url:
            schema["url"] = url
            schema["mainEntityOfPage"] = {"@type": "WebPage", "@id": url}
        if word_count > 0:
            schema["wordCount"] = word_count
        if publisher_name:
            publisher: dict[str, Any] = {"@type": "Organization", "name": publisher_name}
            if publisher_logo:
                publisher["logo"] = {"@type": "ImageObject", "url": publisher_logo}
            schema["publisher"] = publisher
        logger.debug("Generated %s schema for: %s", schema_type, title)
        return schema

    def generate_blog_posting_schema(
        self,
        headline: str,
        date_published: str,
        date_modified: str = "",
        description: str = "",
        image: Optional[str] = None,
        url: str = "",
        author: str = "",
        publisher_name: str = "",
        publisher_logo: str = "",
    ) -> dict:
        """Generate BlogPosting JSON-LD.

        Without a named *author* the post is attributed to the publisher
        organization.
        """
        schema = self.generate_article_schema(
            title=headline,
            author=author or publisher_name,
            date_published=date_published,
            date_modified=date_modified,
            description=description,
            image_url=image or "",
            publisher_name=publisher_name,
            publisher_logo=publisher_logo,
            url=url,
            schema_type="BlogPosting",
        )
        if not author:
            schema["author"] = {"@type": "Organization", "name": publisher_name}
        return schema

    # ------------------------------------------------------------------
    # LocalBusiness
    # ------------------------------------------------------------------

    def generate_local_business_schema(
        self,
        name: str,
        address: dict | str = "",
        phone: str = "",
        opening_hours: list[str] | None = None,
        geo_lat: float | None = None,
        geo_lng: float | None = None,
        category: str = "LocalBusiness",
        url: str = "",
        price_range: str = "",
        image: str = "",
    ) -> dict:
        """Generate LocalBusiness JSON-LD.

        ``opening_hours`` takes shorthand entries such as ``"Mo-Fr 09:00-17:00"``.
        """
        schema: dict[str, Any] = {
            "@context": SCHEMA_CONTEXT,
            "@type": category or "LocalBusiness",
            "name": name,
        }
        if isinstance(address, dict):
            schema["address"] = {"@type": "PostalAddress", **address}
        elif address:
            schema["address"] = {"@type": "PostalAddress", "streetAddress": address}
        if phone:
            schema["telephone"] = phone
        if url:
            schema["@id"] = url
            schema["url"] = url
        if image:
            schema["image"] = image
        if price_range:
            schema["priceRange"] = price_range
        if geo_lat is not None and geo_lng is not None:
            schema["geo"] = {
                "@type": "GeoCoordinates",
                "latitude": geo_lat,
                "longitude": geo_lng,
            }
        if opening_hours:
            schema["openingHoursSpecification"] = [
                parse_opening_hours(h) for h in opening_hours
            ]
        logger.debug("Generated LocalBusiness schema for: %s", name)
        return schema

    # ------------------------------------------------------------------
    # Service / ProfessionalService
    # ------------------------------------------------------------------

    def generate_service_schema(
        self,
        name: str,
        description: str = "",
        url: str = "",
        provider: dict | None = None,
        area_served: dict | str | None = None,
        category: str = "",
    ) -> dict:
        """Generate Service JSON-LD."""
        schema: dict[str, Any] = {
            "@context": SCHEMA_CONTEXT,
            "@type": "Service",
            "serviceType": name,
            "name": name,
        }
        if description:
            schema["description"] = description
        if url:
            schema["url"] = url
        if provider:
            schema["provider"] = {"@type": "Organization", **provider}
        if area_served:
            schema["areaServed"] = area_served
        if category:
            schema["category"] = category
        logger.debug("Generated Service schema for: %s", name)
        return schema

    def generate_professional_service_schema(self, price_range: str = "$$", **kwargs: Any) -> dict:
        """Generate ProfessionalService JSON-LD (a more specific Service)."""
        schema = self.generate_service_schema(**kwargs)
        schema["@type"] = "ProfessionalService"
        schema["priceRange"] = price_range
        return schema

    # ------------------------------------------------------------------
    # FAQPage
    # ------------------------------------------------------------------

    def generate_faq_schema(self, questions: list[dict]) -> dict:
        """Generate FAQPage JSON-LD from list of {question, answer} dicts."""
        entities = []
        for qa in questions or []:
            q = qa.get("question", "").strip()
            a = qa.get("answer", "").strip()
            if not q or not a:
                continue
            entities.append({
                "@type": "Question",
                "name": q,
                "acceptedAnswer": {"@type": "Answer", "text": a},
            })
        logger.debug("Generated FAQ schema with %d questions", len(entities))
        return {
            "@context": SCHEMA_CONTEXT,
            "@type": "FAQPage",
            "mainEntity": entities,
        }

    # ------------------------------------------------------------------
    # HowTo
    # ------------------------------------------------------------------

    def generate_howto_schema(
        self,
        name: str,
        steps: list[dict] | None = None,
        description: str = "",
        total_time: str = "",
        tools: list[str] | None = None,
        supplies: list[str] | None = None,
    ) -> dict:
        """Generate HowTo JSON-LD. ``total_time`` is an ISO 8601 duration."""
        schema: dict[str, Any] = {
            "@context": SCHEMA_CONTEXT,
            "@type": "HowTo",
            "name": name,
        }
        if description:
            schema["description"] = description
        if total_time:
            schema["totalTime"] = total_time
        if tools:
            schema["tool"] = [{"@type": "HowToTool", "name": t} for t in tools]
        if supplies:
            schema["supply"] = [{"@type": "HowToSupply", "name": s} for s in supplies]

        step_list = []
        for idx, step in enumerate(steps or [], start=1):
            s: dict[str, Any] = {"@type": "HowToStep", "position": idx}
            for key in ("name", "text", "image", "url"):
                if key in step:
                    s[key] = step[key]
            step_list.append(s)
        schema["step"] = step_list
        return schema

    # ------------------------------------------------------------------
    # BreadcrumbList
    # ------------------------------------------------------------------

    def generate_breadcrumb_schema(self, breadcrumbs: list[dict]) -> dict:
        """Generate BreadcrumbList JSON-LD from [{name, url}] list."""
        items = [
            {
                "@type": "ListItem",
                "position": idx,
                "name": crumb.get("name", ""),
                "item": crumb.get("url", ""),
            }
            for idx, crumb in enumerate(breadcrumbs or [], start=1)
        ]
        return {
            "@context": SCHEMA_CONTEXT,
            "@type": "BreadcrumbList",
            "itemListElement": items,
        }

    # ------------------------------------------------------------------
    # Organization
    # ------------------------------------------------------------------

    def generate_organization_schema(
        self,
        name: str,
        url: str = "",
        logo: str = "",
        description: str = "",
        social_profiles: list[str] | None = None,
        contact_phone: str = "",
        contact_email: str = "",
        contact_type: str = "customer service",
    ) -> dict:
        """Generate Organization JSON-LD."""
        schema: dict[str, Any] = {
            "@context": SCHEMA_CONTEXT,
            "@type": "Organization",
            "name": name,
        }
        if url:
            schema["url"] = url
        if logo:
            schema["logo"] = logo
        if description:
            schema["description"] = description
        if social_profiles:
            schema["sameAs"] = social_profiles
        if contact_phone or contact_email:
            contact: dict[str, Any] = {"@type": "ContactPoint", "contactType": contact_type}
            if contact_phone:
                contact["telephone"] = contact_phone
            if contact_email:
                contact["email"] = contact_email
            schema["contactPoint"] = contact
        logger.debug("Generated Organization schema for: %s", name)
        return schema

    # ------------------------------------------------------------------
    # Reviews and ratings
    # ------------------------------------------------------------------

    def generate_review_schema(
        self,
        item_reviewed: dict | None = None,
        rating: float = 5,
        author: str = "",
        review_body: str = "",
        date_published: str = "",
        best_rating: float = 5,
    ) -> dict:
        """Generate a Review of an organisation."""
        item_reviewed = item_reviewed or {}
        schema: dict[str, Any] = {
            "@context": SCHEMA_CONTEXT,
            "@type": "Review",
            "itemReviewed": {
                "@type": "Organization",
                "name": item_reviewed.get("name") or "Your Site",
                "url": item_reviewed.get("url") or "https://www.example.com",
            },
            "reviewRating": {
                "@type": "Rating",
                "ratingValue": rating,
                "bestRating": best_rating,
            },
            "author": {"@type": "Person", "name": author},
        }
        if review_body:
            schema["reviewBody"] = review_body
        if date_published:
            schema["datePublished"] = self._normalise_date(date_published)
        return schema

    def generate_aggregate_rating_schema(
        self,
        rating_value: float,
        rating_count: int | None = None,
        review_count: int | None = None,
        item_reviewed: dict | None = None,
        best_rating: float = 5,
        worst_rating: float = 1,
    ) -> dict:
        """Generate a standalone AggregateRating for an organisation."""
        schema: dict[str, Any] = {
            "@context": SCHEMA_CONTEXT,
            "@type": "AggregateRating",
            "itemReviewed": {
                "@type": "Organization",
                "name": (item_reviewed or {}).get("name") or "Your Site",
            },
            "ratingValue": rating_value,
            "bestRating": best_rating,
            "worstRating": worst_rating,
        }
        if rating_count is not None:
            schema["ratingCount"] = rating_count
        if review_count is not None:
            schema["reviewCount"] = review_count
        return schema

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def generate_schema(self, schema_type: str, data: dict[str, Any]) -> dict:
        """Generate a schema by type name.

        Raises:
            ValueError: if *schema_type* is not supported.
        """
        generators = {
            "Article": self.generate_article_schema,
            "BlogPosting": self.generate_blog_posting_schema,
            "LocalBusiness": self.generate_local_business_schema,
            "Service": self.generate_service_schema,
            "ProfessionalService": self.generate_professional_service_schema,
            "FAQ": self.generate_faq_schema,
            "FAQPage": self.generate_faq_schema,
            "HowTo": self.generate_howto_schema,
            "Breadcrumb": self.generate_breadcrumb_schema,
            "BreadcrumbList": self.generate_breadcrumb_schema,
            "Organization": self.generate_organization_schema,
            "Review": self.generate_review_schema,
            "AggregateRating": self.generate_aggregate_rating_schema,
        }
        generator = generators.get(schema_type)
        if generator is None:
            raise ValueError(f"Unknown schema type: {schema_type}")
        return generator(**data)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_schema(self, schema: dict) -> dict:
        """Validate a JSON-LD schema dict for required fields and types.

        Returns dict with ``is_valid``, ``errors``, ``warnings``, and
        ``schema_type``.
        """
        errors: list[str] = []
        warnings: list[str] = []

        if not isinstance(schema, dict):
            return {
                "is_valid": False,
                "errors": ["Schema must be a dict"],
                "warnings": [],
                "schema_type": None,
            }

        if not schema.get("@context"):
            errors.append("Missing @context field")
        elif "schema.org" not in str(schema["@context"]):
            warnings.append("@context does not reference schema.org")

        schema_type = schema.get("@type", "")
        if not schema_type:
            errors.append("Missing @type field")
            return {
                "is_valid": False,
                "errors": errors,
                "warnings": warnings,
                "schema_type": None,
            }

        # JSON-LD allows @type to be a single name or a list of names
        raw_types = schema_type if isinstance(schema_type, list) else [schema_type]
        types = [t for t in raw_types if isinstance(t, str) and t]
        if len(types) != len(raw_types):
            errors.append("@type must be a string or a list of strings")

        required: list[str] = []
        recommended: list[str] = []
        for name in types:
            required += [f for f in _REQUIRED_FIELDS.get(name, []) if f not in required]
            recommended += [f for f in _RECOMMENDED_FIELDS.get(name, []) if f not in recommended]

        for fld in required:
            if fld not in schema:
                errors.append("Missing required field: " + fld)
            elif not schema[fld]:
                errors.append("Empty required field: " + fld)

        for fld in recommended:
            if fld not in schema:
                warnings.append("Missing recommended field: " + fld)

        if {"Article", "BlogPosting"} & set(types):
            if len(str(schema.get("headline", ""))) > 110:
                warnings.append("Headline exceeds 110 characters (Google may truncate)")
            dp = schema.get("datePublished", "")
            if dp and not self._is_valid_date(str(dp)):
                errors.append("datePublished is not a valid ISO 8601 date")

        if {"Service", "ProfessionalService"} & set(types):
            if not schema.get("serviceType") and not schema.get("name"):
                errors.append("Service requires serviceType or name")

        if "FAQPage" in types:
            entities = schema.get("mainEntity", [])
            if not isinstance(entities, list) or len(entities) == 0:
                errors.append("FAQPage must contain at least one Question")
            else:
                for i, entity in enumerate(entities):
                    if not isinstance(entity, dict) or entity.get("@type") != "Question":
                        errors.append("mainEntity[" + str(i) + "] must have @type Question")

        if "HowTo" in types:
            steps = schema.get("step", [])
            if not isinstance(steps, list) or len(steps) == 0:
                errors.append("HowTo must contain at least one step")

        if "Organization" in types and not schema.get("url"):
            warnings.append("Organization should have url")

        try:
            json.dumps(schema)
        except (TypeError, ValueError) as exc:
            errors.append("Schema is not JSON serialisable: " + str(exc))

        is_valid = len(errors) == 0
        logger.debug(
            "Schema validation for %s: valid=%s, errors=%d, warnings=%d",
            schema_type, is_valid, len(errors), len(warnings),
        )
        return {
            "is_valid": is_valid,
            "errors": errors,
            "warnings": warnings,
            "schema_type": schema_type,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _normalise_date(date_str: str) -> str:
        """Try to normalise a date string to ISO 8601."""
        if not date_str:
            return ""
        if re.match(r"\d{4}-\d{2}-\d{2}", date_str):
            return date_str
        for fmt in ("%B %d, %Y", "%b %d, %Y", "%m/%d/%Y", "%d/%m/%Y"):
            try:
                return datetime.strptime(date_str, fmt).strftime("%Y-%m-%d")
            except ValueError:
                continue
        return date_str

    @staticmethod
    def _is_valid_date(date_str: str) -> bool:
        """Check if a string is a valid ISO 8601 date."""
        if re.match(r"\d{4}-\d{2}-\d{2}", date_str):
            return True
        try:
            datetime.fromisoformat(date_str.replace("Z", "+00:00"))
            return True
        except (ValueError, AttributeError):
            return False
