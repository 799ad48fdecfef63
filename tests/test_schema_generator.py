"""Tests for JSON-LD schema generation and validation."""

import json

import pytest

from indexwatch.modules.schema_manager.schema_generator import (
    SchemaGenerator,
    parse_opening_hours,
    render_schema_tag,
)


@pytest.fixture()
def gen():
    return SchemaGenerator()


# ===========================================================================
# Generators
# ===========================================================================
class TestGenerators:

    def test_faq_schema(self, gen):
        schema = gen.generate_faq_schema([
            {"question": "What is SEO?", "answer": "Search Engine Optimization."},
            {"question": "  ", "answer": "dropped"},
        ])
        assert schema["@context"] == "https://schema.org"
        assert schema["@type"] == "FAQPage"
        assert len(schema["mainEntity"]) == 1
        entity = schema["mainEntity"][0]
        assert entity["name"] == "What is SEO?"
        assert entity["acceptedAnswer"] == {"@type": "Answer", "text": "Search Engine Optimization."}
        assert gen.validate_schema(schema)["is_valid"] is True

    def test_blog_posting_defaults_author_to_publisher(self, gen):
        schema = gen.generate_blog_posting_schema(
            headline="Ten coaching tips",
            date_published="2026-01-05T10:00:00",
            description="Tips",
            url="https://blog.example.com/tips",
            publisher_name="Example Coaching",
            publisher_logo="https://blog.example.com/logo.png",
        )
        assert schema["@type"] == "BlogPosting"
        assert schema["author"] == {"@type": "Organization", "name": "Example Coaching"}
        assert schema["dateModified"] == "2026-01-05T10:00:00"
        assert schema["publisher"]["logo"]["url"] == "https://blog.example.com/logo.png"
        assert schema["mainEntityOfPage"]["@id"] == "https://blog.example.com/tips"
        assert gen.validate_schema(schema)["is_valid"] is True

    def test_article_normalises_dates_and_truncates_headline(self, gen):
        schema = gen.generate_article_schema(
            title="x" * 150, author="Ada", date_published="March 2, 2026",
        )
        assert schema["datePublished"] == "2026-03-02"
        assert len(schema["headline"]) == 110
        assert schema["author"] == {"@type": "Person", "name": "Ada"}

    def test_local_business(self, gen):
        schema = gen.generate_local_business_schema(
            name="Example Cafe",
            address={"streetAddress": "1 Main St", "addressLocality": "Springfield"},
            phone="+1-555-0100",
            opening_hours=["Mo-Fr 09:00-17:00"],
            geo_lat=1.5,
            geo_lng=2.5,
        )
        assert schema["address"]["@type"] == "PostalAddress"
        assert schema["geo"] == {"@type": "GeoCoordinates", "latitude": 1.5, "longitude": 2.5}
        assert schema["openingHoursSpecification"][0]["dayOfWeek"] == [
            "Monday", "Tuesday", "Wednesday", "Thursday", "Friday",
        ]
        assert gen.validate_schema(schema)["is_valid"] is True

    def test_service_and_professional_service(self, gen):
        service = gen.generate_service_schema(
            name="Career Coaching",
            description="One-to-one coaching",
            provider={"name": "Example Coaching"},
            area_served="Worldwide",
        )
        assert service["serviceType"] == "Career Coaching"
        assert service["provider"] == {"@type": "Organization", "name": "Example Coaching"}

        professional = gen.generate_professional_service_schema(name="Audit", price_range="$$$")
        assert professional["@type"] == "ProfessionalService"
        assert professional["priceRange"] == "$$$"

    def test_howto_and_breadcrumb(self, gen):
        howto = gen.generate_howto_schema(
            name="Submit a sitemap",
            steps=[{"name": "Open", "text": "Open Search Console"}, {"text": "Submit"}],
            tools=["Browser"],
        )
        assert [s["position"] for s in howto["step"]] == [1, 2]
        assert howto["tool"] == [{"@type": "HowToTool", "name": "Browser"}]

        crumbs = gen.generate_breadcrumb_schema([
            {"name": "Home", "url": "https://example.com"},
            {"name": "Blog", "url": "https://example.com/blog"},
        ])
        assert crumbs["itemListElement"][1] == {
            "@type": "ListItem", "position": 2, "name": "Blog", "item": "https://example.com/blog",
        }

    def test_organization(self, gen):
        schema = gen.generate_organization_schema(
            name="Example Coaching",
            url="https://example.com",
            social_profiles=["https://x.com/example"],
            contact_email="hi@example.com",
        )
        assert schema["sameAs"] == ["https://x.com/example"]
        assert schema["contactPoint"] == {
            "@type": "ContactPoint", "contactType": "customer service", "email": "hi@example.com",
        }

    def test_review(self, gen):
        schema = gen.generate_review_schema(
            item_reviewed={"name": "Example Coaching", "url": "https://example.com"},
            rating=4,
            author="Sam Lee",
            review_body="Clear and practical sessions.",
            date_published="March 3, 2026",
        )
        assert schema["@type"] == "Review"
        assert schema["reviewRating"] == {"@type": "Rating", "ratingValue": 4, "bestRating": 5}
        assert schema["author"] == {"@type": "Person", "name": "Sam Lee"}
        assert schema["datePublished"] == "2026-03-03"
        assert gen.validate_schema(schema)["is_valid"] is True

    def test_aggregate_rating(self, gen):
        schema = gen.generate_schema("AggregateRating", {
            "rating_value": 4.7, "review_count": 38, "item_reviewed": {"name": "Example Coaching"},
        })
        assert schema["itemReviewed"] == {"@type": "Organization", "name": "Example Coaching"}
        assert schema["reviewCount"] == 38
        assert "ratingCount" not in schema
        assert (schema["bestRating"], schema["worstRating"]) == (5, 1)
        assert gen.validate_schema(schema)["is_valid"] is True


class TestGenerateSchemaDispatch:

    @pytest.mark.parametrize("alias,expected", [
        ("FAQ", "FAQPage"),
        ("FAQPage", "FAQPage"),
    ])
    def test_faq_aliases(self, gen, alias, expected):
        schema = gen.generate_schema(alias, {"questions": [{"question": "Q?", "answer": "A."}]})
        assert schema["@type"] == expected

    def test_breadcrumb_alias(self, gen):
        schema = gen.generate_schema("Breadcrumb", {"breadcrumbs": [{"name": "Home", "url": "/"}]})
        assert schema["@type"] == "BreadcrumbList"

    def test_unknown_type(self, gen):
        with pytest.raises(ValueError, match="Unknown schema type"):
            gen.generate_schema("Spaceship", {})


# ===========================================================================
# Validation
# ===========================================================================
class TestValidateSchema:

    def test_missing_context_and_type(self, gen):
        result = gen.validate_schema({"name": "x"})
        assert result["is_valid"] is False
        assert "Missing @context field" in result["errors"]
        assert "Missing @type field" in result["errors"]
        assert result["schema_type"] is None

    def test_foreign_context_is_a_warning(self, gen):
        result = gen.validate_schema({"@context": "https://example.org", "@type": "Organization", "name": "X"})
        assert result["is_valid"] is True
        assert "@context does not reference schema.org" in result["warnings"]

    def test_missing_required_field(self, gen):
        result = gen.validate_schema({"@context": "https://schema.org", "@type": "Article", "headline": "H"})
        assert result["is_valid"] is False
        assert "Missing required field: author" in result["errors"]
        assert "Missing required field: datePublished" in result["errors"]

    def test_empty_faq_is_invalid(self, gen):
        result = gen.validate_schema(gen.generate_faq_schema([]))
        assert result["is_valid"] is False
        assert "FAQPage must contain at least one Question" in result["errors"]

    def test_bad_date(self, gen):
        schema = gen.generate_article_schema(title="T", author="A", date_published="someday")
        result = gen.validate_schema(schema)
        assert "datePublished is not a valid ISO 8601 date" in result["errors"]

    def test_non_dict(self, gen):
        assert gen.validate_schema(["not", "a", "dict"])["errors"] == ["Schema must be a dict"]

    def test_unregistered_type_only_needs_context_and_type(self, gen):
        result = gen.validate_schema({"@context": "https://schema.org", "@type": "Event"})
        assert result["is_valid"] is True
        assert result["schema_type"] == "Event"

    def test_type_list_checks_every_type(self, gen):
        result = gen.validate_schema({
            "@context": "https://schema.org",
            "@type": ["Organization", "LocalBusiness"],
            "name": "Example Coaching",
        })
        assert result["is_valid"] is False
        assert result["errors"] == ["Missing required field: address"]
        assert result["schema_type"] == ["Organization", "LocalBusiness"]
        assert "Organization should have url" in result["warnings"]

    def test_type_list_with_non_string(self, gen):
        result = gen.validate_schema({"@context": "https://schema.org", "@type": ["Organization", 3], "name": "X"})
        assert "@type must be a string or a list of strings" in result["errors"]

    def test_faq_entity_that_is_not_an_object(self, gen):
        schema = gen.generate_faq_schema([{"question": "Q?", "answer": "A."}])
        schema["mainEntity"].append("Is this a question?")
        result = gen.validate_schema(schema)
        assert result["errors"] == ["mainEntity[1] must have @type Question"]


class TestHelpers:

    def test_render_schema_tag(self):
        tag = render_schema_tag({"@type": "Thing"})
        assert tag.startswith('<script type="application/ld+json">\n')
        assert tag.endswith("\n</script>")
        body = tag[len('<script type="application/ld+json">'):-len("</script>")]
        assert json.loads(body) == {"@type": "Thing"}

    def test_parse_opening_hours_list(self):
        spec = parse_opening_hours("Sa,Su 10:00-14:00")
        assert spec["dayOfWeek"] == ["Saturday", "Sunday"]
        assert spec["opens"] == "10:00"
        assert spec["closes"] == "14:00"
